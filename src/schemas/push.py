"""Pydantic schemas for push endpoint registration."""
from typing import Optional

from pydantic import BaseModel, Field


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscribeBody(BaseModel):
    """Payload posted by the client after ``pushManager.subscribe``."""

    endpoint: str = Field(..., min_length=1)
    keys: PushKeys
    userAgent: Optional[str] = None


class PushUnsubscribeBody(BaseModel):
    endpoint: str = Field(..., min_length=1)
