"""Admin-owned bookable time window."""

from sqlalchemy import Column, DateTime, Boolean, ForeignKey, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID
import uuid
from app.core.database import Base


class AvailabilitySlot(Base):
    __tablename__ = "availability_slots"
    __table_args__ = (CheckConstraint("end_time > start_time", name="ck_availability_slots_end_after_start"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    admin_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False, index=True)
    end_time = Column(DateTime, nullable=False)
    is_booked = Column(Boolean, nullable=False, default=False)
