"""Delivery idempotency ledger."""
from __future__ import annotations

import logging
from typing import Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.clock import DateLike, to_local_date
from src.repositories.reminder_log_repo import ReminderLogRepo
from src.schemas.enums import Channel, ReminderKind


logger = logging.getLogger(__name__)


def _value(item: Union[str, ReminderKind, Channel]) -> str:
    return item.value if isinstance(item, (ReminderKind, Channel)) else str(item)


class DeliveryLedger:
    """
    At-most-once delivery per (subscription, reminder type, calendar date, channel).

    Check with :meth:`has_been_sent` before sending and call :meth:`record`
    only after a confirmed send, so failed sends are retried on the next tick.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.repo = ReminderLogRepo(session)

    async def has_been_sent(
        self,
        subscription_id: UUID,
        reminder_type: Union[str, ReminderKind],
        billing_date: DateLike,
        channel: Union[str, Channel],
    ) -> bool:
        return await self.repo.exists(
            subscription_id,
            _value(reminder_type),
            to_local_date(billing_date),
            _value(channel),
        )

    async def record(
        self,
        subscription_id: UUID,
        owner_id: UUID,
        reminder_type: Union[str, ReminderKind],
        billing_date: DateLike,
        channel: Union[str, Channel],
    ) -> bool:
        """
        Write the ledger row. Returns ``False`` when a concurrent run already
        recorded the same key; that is a benign duplicate, not an error.
        """
        inserted = await self.repo.insert_if_absent(
            subscription_id,
            owner_id,
            _value(reminder_type),
            to_local_date(billing_date),
            _value(channel),
        )
        if not inserted:
            logger.info(
                f"Ledger already holds {subscription_id}/{_value(reminder_type)}/"
                f"{to_local_date(billing_date)}/{_value(channel)}"
            )
        return inserted
