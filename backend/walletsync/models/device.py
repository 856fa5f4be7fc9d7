"""Device model - a wallet installation and its current push token."""
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timestamps import utcnow


class Device(Base):
    """A device, identified by the (library identifier, push token) pair.

    A token rotation yields a new row rather than updating the old one.
    """

    __tablename__ = "devices"
    __table_args__ = (
        UniqueConstraint("library_identifier", "push_token", name="uq_device_library_token"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    library_identifier = Column(String, nullable=False, index=True)
    push_token = Column(String, nullable=False)
    registered_at = Column(DateTime, default=utcnow)

    registrations = relationship(
        "Registration",
        back_populates="device",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
