"""Pydantic schemas for due reminders."""
from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.schemas.enums import ReminderKind


class ReminderRecord(BaseModel):
    """
    A subscription that needs a reminder now.

    ``kind`` is the variant tag; the API exposes it as ``reminderType``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    kind: ReminderKind = Field(..., alias="reminderType")
    subscription_id: UUID
    subscription_name: str
    owner_id: UUID
    owner_name: str = "Unknown"
    owner_email: Optional[str] = None
    amount: str = Field(..., description="Decimal string with two places")
    currency: str = "USD"
    billing_date: date
    message: str

    @property
    def tag(self) -> str:
        """Stable display-layer key; newer notifications with the same tag replace older ones."""

        return f"reminder-{self.subscription_id}-{self.kind.value}"

    @property
    def url(self) -> str:
        return f"/subscriptions/{self.subscription_id}"


class RemindersResponse(BaseModel):
    success: Literal[True] = True
    reminders: List[ReminderRecord]
    count: int
