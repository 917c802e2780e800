"""Repository helpers for the reminder delivery ledger."""
from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.reminder_log import ReminderLog

_DELIVERY_KEY = ["subscription_id", "reminder_type", "billing_date", "channel"]


class ReminderLogRepo:
    """Existence checks and conflict-tolerant inserts for :class:`ReminderLog`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def exists(
        self,
        subscription_id: UUID,
        reminder_type: str,
        billing_date: date,
        channel: str,
    ) -> bool:
        result = await self.session.execute(
            select(ReminderLog.id)
            .where(
                ReminderLog.subscription_id == subscription_id,
                ReminderLog.reminder_type == reminder_type,
                ReminderLog.billing_date == billing_date,
                ReminderLog.channel == channel,
            )
            .limit(1)
        )
        return result.first() is not None

    async def insert_if_absent(
        self,
        subscription_id: UUID,
        user_id: UUID,
        reminder_type: str,
        billing_date: date,
        channel: str,
    ) -> bool:
        """Insert a ledger row; returns ``False`` when the delivery key already exists."""

        dialect = self.session.get_bind().dialect.name
        insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
        statement = (
            insert(ReminderLog.__table__)
            .values(
                subscription_id=subscription_id,
                user_id=user_id,
                reminder_type=reminder_type,
                billing_date=billing_date,
                channel=channel,
            )
            .on_conflict_do_nothing(index_elements=_DELIVERY_KEY)
        )
        result = await self.session.execute(statement)
        return bool(result.rowcount)

    async def count(self, subscription_id: UUID, channel: str | None = None) -> int:
        query = select(ReminderLog.id).where(ReminderLog.subscription_id == subscription_id)
        if channel is not None:
            query = query.where(ReminderLog.channel == channel)
        result = await self.session.execute(query)
        return len(result.all())
