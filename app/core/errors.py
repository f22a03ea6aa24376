"""Domain error taxonomy shared by repositories, services and the HTTP layer.

Domain errors propagate verbatim to the caller. Anything else raised inside a
service is collapsed into ``InternalError`` by ``service_boundary`` so storage
details never leak past the service layer.
"""

import logging
from functools import wraps

logger = logging.getLogger(__name__)


class DomainError(Exception):
    """Base class for errors the HTTP layer translates into a response."""

    default_message = "domain error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class NotFoundError(DomainError):
    default_message = "data not found"


class ConflictingDataError(DomainError):
    default_message = "data conflicts with existing data"


class NoUpdatedDataError(DomainError):
    """The update was a no-op. Not a failure, just nothing to do."""

    default_message = "no data to update"


class ForbiddenError(DomainError):
    default_message = "action not allowed in the current state"


class InternalError(DomainError):
    default_message = "internal error"


def service_boundary(func):
    """Let domain errors through and collapse everything else into InternalError."""

    @wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except DomainError:
            raise
        except Exception as exc:
            logger.exception("%s failed: %s", func.__qualname__, exc)
            raise InternalError() from exc

    return wrapper
