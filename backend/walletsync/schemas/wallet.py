"""Wallet web service request bodies."""
from typing import List
from pydantic import BaseModel, Field


class PushTokenRequest(BaseModel):
    """Body of a device registration request."""
    push_token: str = Field(..., alias="pushToken", min_length=1)


class LogEntriesRequest(BaseModel):
    """Diagnostic messages reported by wallet clients."""
    logs: List[str]
