"""Outbox of blobs whose compensating delete failed."""

from sqlalchemy import Column, String, Integer, Text, DateTime
from sqlalchemy.dialects.postgresql import UUID
import uuid
from datetime import datetime
from app.core.database import Base


class OrphanedBlob(Base):
    __tablename__ = "orphaned_blobs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    path = Column(String, nullable=False, index=True)
    reason = Column(String, nullable=False)  # e.g. 'quote_create', 'payment_proof_create'
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="pending", index=True)  # pending, retrying, failed, deleted
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
