"""Repository utilities for user subscriptions."""
from __future__ import annotations

import datetime as dt
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import Row, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.clock import as_utc
from src.db.models.subscription import Subscription
from src.db.models.user import User


class SubscriptionRepo:
    """Data-access helpers for :class:`Subscription`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, subscription_id: UUID) -> Subscription | None:
        return await self.session.get(Subscription, subscription_id)

    async def get_for_user(self, user_id: UUID, subscription_id: UUID) -> Subscription | None:
        result = await self.session.execute(
            select(Subscription).where(
                Subscription.id == subscription_id,
                Subscription.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: UUID) -> List[Subscription]:
        result = await self.session.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id)
            .order_by(Subscription.next_billing_date.asc().nulls_last(), Subscription.name)
        )
        return list(result.scalars().all())

    async def create(self, user_id: UUID, **fields: Any) -> Subscription:
        if fields.get("next_billing_date") is not None:
            fields["next_billing_date"] = as_utc(fields["next_billing_date"])
        subscription = Subscription(user_id=user_id, **fields)
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription

    async def update(self, subscription: Subscription, **fields: Any) -> Subscription:
        if fields.get("next_billing_date") is not None:
            fields["next_billing_date"] = as_utc(fields["next_billing_date"])
        for key, value in fields.items():
            setattr(subscription, key, value)
        self.session.add(subscription)
        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription

    async def set_next_billing_date(
        self, subscription_id: UUID, next_billing_date: Optional[dt.datetime]
    ) -> None:
        subscription = await self.session.get(Subscription, subscription_id)
        if subscription is None:
            return
        subscription.next_billing_date = (
            as_utc(next_billing_date) if next_billing_date is not None else None
        )
        await self.session.flush()

    async def due_in_window(
        self,
        window_start: dt.datetime,
        window_end: dt.datetime,
        user_id: UUID | None = None,
    ) -> List[Row]:
        """
        Active subscriptions billed within ``[window_start, window_end)``,
        outer-joined with their owner (owner columns are ``None`` when missing).
        """
        query = (
            select(Subscription, User.name, User.email)
            .outerjoin(User, Subscription.user_id == User.id)
            .where(
                Subscription.is_active.is_(True),
                Subscription.next_billing_date.is_not(None),
                Subscription.next_billing_date >= as_utc(window_start),
                Subscription.next_billing_date < as_utc(window_end),
            )
            .order_by(Subscription.user_id, Subscription.next_billing_date)
        )
        if user_id is not None:
            query = query.where(Subscription.user_id == user_id)
        result = await self.session.execute(query)
        return list(result.all())

    async def past_due(self, before: dt.datetime) -> List[Subscription]:
        """Active subscriptions whose next billing date is strictly before ``before``."""

        result = await self.session.execute(
            select(Subscription).where(
                Subscription.is_active.is_(True),
                Subscription.next_billing_date.is_not(None),
                Subscription.next_billing_date < as_utc(before),
            )
        )
        return list(result.scalars().all())
