"""Type of service catalog entry."""

from sqlalchemy import Column, String, Float
from sqlalchemy.dialects.postgresql import UUID
import uuid
from app.core.database import Base


class TypeOfService(Base):
    __tablename__ = "types_of_service"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False, default=0.0)
