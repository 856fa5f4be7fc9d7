"""UserData model - application payload an artifact is built from."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timestamps import utcnow


class UserData(Base):
    """Source of truth for an item's artifact content (1:1 with Item)."""

    __tablename__ = "user_data"

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(String(36), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, unique=True)
    payload = Column(Text, nullable=False, default="{}")  # JSON
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    item = relationship("Item", back_populates="user_data")
