"""Shared repository plumbing: lookups, writes and the scoped transaction."""

import logging
from contextlib import asynccontextmanager
from typing import Any, Awaitable, Callable
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ConflictingDataError, NotFoundError

logger = logging.getLogger(__name__)


def paginate(query, skip: int, limit: int):
    """Apply page-oriented pagination: ``skip`` is a 1-based page number."""
    if limit > 0:
        query = query.limit(limit).offset(max(skip - 1, 0) * limit)
    return query


class BaseRepository:
    """CRUD over one model, bound to a request-scoped session.

    Repositories built on the same session share its transaction, so a
    quote repository and an image repository constructed from ``repo.db``
    inside ``transaction()`` commit or roll back together.
    """

    model: Any = None

    def __init__(self, db: AsyncSession):
        self.db = db

    @asynccontextmanager
    async def transaction(self):
        """Commit when the block exits cleanly, roll back on any exception."""
        try:
            yield self
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def with_tx(self, fn: Callable[["BaseRepository"], Awaitable[Any]]) -> Any:
        async with self.transaction() as tx_repo:
            return await fn(tx_repo)

    async def get_by_id(self, id: UUID):
        obj = await self.db.get(self.model, id)
        if obj is None:
            raise NotFoundError(f"{self.model.__name__} {id} not found")
        return obj

    async def add(self, obj):
        self.db.add(obj)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            logger.warning("Integrity violation inserting %s: %s", self.model.__name__, exc.orig)
            raise ConflictingDataError() from exc
        return obj

    async def update(self, obj, values: dict):
        for key, value in values.items():
            setattr(obj, key, value)
        try:
            await self.db.flush()
        except IntegrityError as exc:
            logger.warning("Integrity violation updating %s: %s", self.model.__name__, exc.orig)
            raise ConflictingDataError() from exc
        return obj

    async def delete(self, id: UUID) -> None:
        await self.db.execute(delete(self.model).where(self.model.id == id))
