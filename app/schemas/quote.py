"""Pydantic schemas for quotes and quote images."""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel
from typing import Optional
from app.utils.datetime_utils import NaiveUTCDateTime
from app.models.quote import QuoteState


class QuoteOut(BaseModel):
    """Schema for returning (and caching) a quote."""
    id: UUID
    type_of_service_id: UUID
    client_id: UUID
    time: datetime
    description: str
    state: QuoteState
    price: float
    test_required: bool = False

    class Config:
        from_attributes = True


class QuoteImageOut(BaseModel):
    id: UUID
    quote_id: UUID
    url: str

    class Config:
        from_attributes = True


class QuoteDetailOut(BaseModel):
    """A quote together with its images."""
    quote: QuoteOut
    images: list[QuoteImageOut]


class QuoteUpdate(BaseModel):
    """Partial update. Fields left as None are not touched."""
    type_of_service_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    time: Optional[NaiveUTCDateTime] = None
    description: Optional[str] = None
    state: Optional[QuoteState] = None
    price: Optional[float] = None


class QuoteStateChange(BaseModel):
    state: str  # validated against QuoteState by the service


class QuoteFilter(BaseModel):
    type_of_service_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    start_date: Optional[NaiveUTCDateTime] = None
    end_date: Optional[NaiveUTCDateTime] = None
    state: Optional[QuoteState] = None
    skip: int = 1  # 1-based page number
    limit: int = 0  # 0 = no pagination
