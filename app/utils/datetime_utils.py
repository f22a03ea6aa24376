"""Timestamps are stored as naive UTC."""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# Incoming datetimes with an offset are converted before they reach a query
NaiveUTCDateTime = Annotated[datetime, AfterValidator(to_naive_utc)]
