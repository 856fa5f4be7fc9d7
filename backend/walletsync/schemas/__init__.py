"""Pydantic schemas for API request models."""
from .wallet import PushTokenRequest, LogEntriesRequest

__all__ = ["PushTokenRequest", "LogEntriesRequest"]
