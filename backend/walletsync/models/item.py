"""Item model - a distributable pass or order."""
import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timestamps import utcnow


class Item(Base):
    """A distributable unit, versioned by ``updated_at``."""

    __tablename__ = "items"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type_identifier = Column(String, nullable=False, index=True)
    authentication_token = Column(String, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    registrations = relationship("Registration", back_populates="item", cascade="all, delete-orphan")
    user_data = relationship("UserData", back_populates="item", uselist=False, cascade="all, delete-orphan")
