"""Pydantic schemas for payment proofs."""

from uuid import UUID
from pydantic import BaseModel
from typing import Optional


class PaymentProofOut(BaseModel):
    id: UUID
    quote_id: UUID
    url: str
    is_reviewed: bool

    class Config:
        from_attributes = True


class PaymentProofUpdate(BaseModel):
    is_reviewed: bool


class PaymentProofFilter(BaseModel):
    quote_id: Optional[UUID] = None
    is_reviewed: Optional[bool] = None
    skip: int = 1
    limit: int = 0
