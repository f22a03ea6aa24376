"""Pydantic schemas for appointments."""

from uuid import UUID
from pydantic import BaseModel
from typing import Optional
from app.utils.datetime_utils import NaiveUTCDateTime
from app.models.appointment import AppointmentStatus


class AppointmentCreate(BaseModel):
    """Schema for booking an appointment. The client comes from the auth token."""
    slot_id: UUID
    quote_id: UUID


class AppointmentUpdate(BaseModel):
    slot_id: Optional[UUID] = None


class AppointmentStatusChange(BaseModel):
    status: AppointmentStatus


class AppointmentOut(BaseModel):
    id: UUID
    client_id: UUID
    slot_id: UUID
    quote_id: UUID
    status: AppointmentStatus

    class Config:
        from_attributes = True


class AppointmentFilter(BaseModel):
    customer_id: Optional[UUID] = None
    quote_id: Optional[UUID] = None
    status: Optional[AppointmentStatus] = None
    start_date: Optional[NaiveUTCDateTime] = None  # compared against the slot's start time
    end_date: Optional[NaiveUTCDateTime] = None
    skip: int = 1
    limit: int = 0
