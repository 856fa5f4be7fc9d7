"""Database models."""
from .item import Item
from .device import Device
from .registration import Registration
from .user_data import UserData

__all__ = ["Item", "Device", "Registration", "UserData"]
