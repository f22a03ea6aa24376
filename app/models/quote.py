"""Quote and quote image models."""

from sqlalchemy import Column, String, DateTime, Float, Boolean, ForeignKey, Text, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
import uuid
from datetime import datetime
import enum
from app.core.database import Base


class QuoteState(str, enum.Enum):
    # Approval sub-state
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REQUIRES_PROOF = "requires_proof"
    # Booking-lifecycle sub-state
    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# States an admin may move a quote into through a state change
ADMIN_TARGET_STATES = frozenset({QuoteState.APPROVED, QuoteState.REJECTED, QuoteState.REQUIRES_PROOF})

# Once here, the quote can no longer back a new appointment
FINISHED_STATES = frozenset({QuoteState.BOOKED, QuoteState.CANCELLED, QuoteState.COMPLETED})


class Quote(Base):
    __tablename__ = "quotes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type_of_service_id = Column(UUID(as_uuid=True), ForeignKey("types_of_service.id", ondelete="RESTRICT"), nullable=False, index=True)
    client_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    time = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    description = Column(Text, nullable=False, default="")
    state = Column(
        SQLEnum(QuoteState, name="quote_state_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=QuoteState.PENDING,
        index=True,
    )
    price = Column(Float, nullable=False, default=0.0)
    test_required = Column(Boolean, nullable=False, default=False)


class QuoteImage(Base):
    __tablename__ = "quote_images"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    quote_id = Column(UUID(as_uuid=True), ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String, nullable=False)
