"""
Periodic jobs: reminder delivery and billing date advancement

Both jobs open their own sessions from ``session_factory`` so they can run
from the scheduler, a cron-triggered endpoint or a test with the same code.
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.core.clock import local_today, start_of_day
from src.core.config import settings
from src.repositories.subscription_repo import SubscriptionRepo
from src.services.billing import advance
from src.services.email import send_reminder_email
from src.services.notifier import EmailSender, PushSender, ReminderNotifier
from src.services.reminders import collect_due_reminders
from src.services.webpush import send_push


logger = logging.getLogger(__name__)

SessionFactory = async_sessionmaker[AsyncSession]


@dataclass
class ReminderJobResult:
    processed: int = 0
    delivered: int = 0
    skipped_already_sent: int = 0
    skipped: int = 0
    no_subscribers: int = 0
    pruned: int = 0
    failed: int = 0
    email: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AdvanceJobResult:
    scanned: int = 0
    advanced: int = 0
    cleared: int = 0
    snapped: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


async def run_reminder_job(
    session_factory: SessionFactory,
    today: Optional[dt.date] = None,
    push_sender: PushSender = send_push,
    email_sender: EmailSender = send_reminder_email,
) -> ReminderJobResult:
    """Collect reminders due today or tomorrow and deliver them once per channel."""

    today = today or local_today()
    result = ReminderJobResult()

    async with session_factory() as session:
        records = await collect_due_reminders(session, today)
        logger.info(f"Reminder job for {today}: {len(records)} due reminders")
        if not records:
            return result

        notifier = ReminderNotifier(session, push_sender=push_sender, email_sender=email_sender)

        push_stats = await notifier.deliver_push(records)
        result.processed = push_stats.processed
        result.delivered = push_stats.delivered
        result.skipped_already_sent = push_stats.skipped_already_sent
        result.skipped = push_stats.skipped
        result.no_subscribers = push_stats.no_subscribers
        result.pruned = push_stats.pruned
        result.failed = push_stats.failed

        if settings.email.enabled:
            email_stats = await notifier.deliver_email(records)
            result.email = email_stats.as_dict()

    logger.info(f"Reminder job finished: {result.as_dict()}")
    return result


async def run_advancement_job(
    session_factory: SessionFactory, today: Optional[dt.date] = None
) -> AdvanceJobResult:
    """Roll every past-due billing date forward; each record commits on its own."""

    today = today or local_today()
    result = AdvanceJobResult()

    async with session_factory() as session:
        repo = SubscriptionRepo(session)
        due = [
            (subscription.id, subscription.billing_cycle, subscription.next_billing_date)
            for subscription in await repo.past_due(start_of_day(today))
        ]
        result.scanned = len(due)

        for subscription_id, billing_cycle, next_billing_date in due:
            try:
                outcome = advance(billing_cycle, next_billing_date, today)
                await repo.set_next_billing_date(subscription_id, outcome.next_date)
                await session.commit()
            except Exception as exc:
                logger.exception(f"Failed to advance subscription {subscription_id}: {exc}")
                await session.rollback()
                result.failed += 1
                continue

            if outcome.cleared:
                result.cleared += 1
            else:
                result.advanced += 1
                if outcome.snapped:
                    result.snapped += 1
            logger.debug(
                f"Subscription {subscription_id}: {next_billing_date} -> {outcome.next_date}"
            )

    logger.info(f"Advancement job for {today} finished: {result.as_dict()}")
    return result
