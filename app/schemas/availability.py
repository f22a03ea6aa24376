"""Pydantic schemas for availability slots."""

from datetime import datetime
from uuid import UUID
from pydantic import BaseModel, Field, model_validator
from typing import Optional
from app.utils.datetime_utils import NaiveUTCDateTime
import enum


class SlotState(str, enum.Enum):
    FREE = "free"
    BOOKED = "booked"


class AvailabilitySlotCreate(BaseModel):
    start_time: NaiveUTCDateTime
    end_time: NaiveUTCDateTime

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class AvailabilitySlotUpdate(BaseModel):
    start_time: Optional[NaiveUTCDateTime] = None
    end_time: Optional[NaiveUTCDateTime] = None


class AvailabilitySlotOut(BaseModel):
    id: UUID
    admin_id: UUID
    start_time: datetime
    end_time: datetime
    is_booked: bool

    class Config:
        from_attributes = True


class AvailabilitySlotFilter(BaseModel):
    admin_id: Optional[UUID] = None
    month: Optional[str] = Field(default=None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")  # "2025-06"
    start_date: Optional[NaiveUTCDateTime] = None
    end_date: Optional[NaiveUTCDateTime] = None
    state: Optional[SlotState] = None
    skip: int = 1
    limit: int = 0
