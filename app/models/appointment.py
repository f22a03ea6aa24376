"""Appointment model: binds a client, a slot and a quote."""

from sqlalchemy import Column, ForeignKey, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
import uuid
import enum
from app.core.database import Base


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that occupy their slot
BLOCKING_STATUSES = frozenset({AppointmentStatus.BOOKED, AppointmentStatus.COMPLETED})

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.BOOKED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.BOOKED: frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED}),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
}


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    client_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    slot_id = Column(UUID(as_uuid=True), ForeignKey("availability_slots.id", ondelete="RESTRICT"), nullable=False, index=True)
    quote_id = Column(UUID(as_uuid=True), ForeignKey("quotes.id", ondelete="RESTRICT"), nullable=False, unique=True)
    status = Column(
        SQLEnum(AppointmentStatus, name="appointment_status_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AppointmentStatus.PENDING,
        index=True,
    )
