"""Pydantic schemas for Subscription resources"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.schemas.enums import BillingCycle


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _normalise_currency(value: str) -> str:
    value = value.strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise ValueError("currency must be a three-letter ISO 4217 code")
    return value


class SubscriptionCreate(_CamelModel):
    """Schema for creating a subscription."""

    name: str = Field(..., min_length=1, description="Display name")
    amount: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    currency: str = Field(default="USD", description="ISO 4217 code")
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    next_billing_date: Optional[datetime] = None
    is_active: bool = True
    is_auto_renew: bool = True

    @field_validator("currency")
    @classmethod
    def _check_currency(cls, value: str) -> str:
        return _normalise_currency(value)


class SubscriptionUpdate(_CamelModel):
    """Partial update; only fields present in the payload are written."""

    name: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    currency: Optional[str] = None
    billing_cycle: Optional[BillingCycle] = None
    next_billing_date: Optional[datetime] = None
    is_active: Optional[bool] = None
    is_auto_renew: Optional[bool] = None

    @field_validator("currency")
    @classmethod
    def _check_currency(cls, value: Optional[str]) -> Optional[str]:
        return None if value is None else _normalise_currency(value)


class SubscriptionRead(_CamelModel):
    """Schema returned when reading a subscription."""

    id: UUID
    user_id: UUID
    name: str
    amount: Decimal
    currency: str
    billing_cycle: str
    next_billing_date: Optional[datetime] = None
    is_active: bool
    is_auto_renew: bool

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )
