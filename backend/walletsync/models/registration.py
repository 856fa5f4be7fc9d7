"""Registration model - subscription of one device to one item."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timestamps import utcnow


class Registration(Base):
    """Join between a Device and an Item. At most one row per pair."""

    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("device_id", "item_id", name="uq_registration_device_item"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    device_id = Column(Integer, ForeignKey("devices.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(String(36), ForeignKey("items.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    device = relationship("Device", back_populates="registrations")
    item = relationship("Item", back_populates="registrations")
