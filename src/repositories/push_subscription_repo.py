"""Repository for registered push endpoints."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.push_subscription import PushSubscription


class PushSubscriptionRepo:
    """Data-access helpers for :class:`PushSubscription`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_user_and_endpoint(
        self, user_id: UUID, endpoint: str
    ) -> Optional[PushSubscription]:
        result = await self.session.execute(
            select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
        )
        return result.scalar_one_or_none()

    async def list_active(self, user_id: UUID) -> List[PushSubscription]:
        result = await self.session.execute(
            select(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active.is_(True),
            )
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        user_id: UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: Optional[str] = None,
    ) -> PushSubscription:
        """Create or refresh an endpoint; re-subscribing reactivates a pruned row."""

        subscription = await self.get_by_user_and_endpoint(user_id, endpoint)
        if subscription is None:
            subscription = PushSubscription(
                user_id=user_id,
                endpoint=endpoint,
                p256dh=p256dh,
                auth=auth,
                user_agent=user_agent,
                is_active=True,
            )
            self.session.add(subscription)
        else:
            subscription.p256dh = p256dh
            subscription.auth = auth
            subscription.user_agent = user_agent
            subscription.is_active = True
            self.session.add(subscription)

        await self.session.flush()
        await self.session.refresh(subscription)
        return subscription

    async def deactivate(self, subscription_id: UUID) -> None:
        await self.session.execute(
            update(PushSubscription)
            .where(PushSubscription.id == subscription_id)
            .values(is_active=False)
        )
        await self.session.flush()

    async def deactivate_for_user(self, user_id: UUID, endpoint: str) -> bool:
        result = await self.session.execute(
            update(PushSubscription)
            .where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
            .values(is_active=False)
        )
        await self.session.flush()
        return bool(result.rowcount)
