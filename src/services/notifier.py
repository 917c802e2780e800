"""
Server-side reminder delivery

Each due record goes through the same stages on every channel:
check the ledger, send, then record the delivery. Per-endpoint and
per-record failures are logged and counted; they never abort the batch.
"""
from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Sequence, Set, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.repositories.push_subscription_repo import PushSubscriptionRepo
from src.schemas.enums import Channel
from src.schemas.reminder import ReminderRecord
from src.services.email import EmailResult, send_reminder_email
from src.services.ledger import DeliveryLedger
from src.services.reminders import with_email_address
from src.services.webpush import PushPayload, PushResult, send_push


logger = logging.getLogger(__name__)

PushSender = Callable[[Dict[str, Any], PushPayload], Awaitable[PushResult]]
EmailSender = Callable[[ReminderRecord], Awaitable[EmailResult]]


class Outcome(str, Enum):
    DELIVERED = "delivered"
    ALREADY_SENT = "already_sent"
    NOT_DELIVERED = "not_delivered"
    SKIPPED = "skipped"


@dataclass
class PushDeliveryStats:
    processed: int = 0
    delivered: int = 0
    skipped_already_sent: int = 0
    skipped: int = 0
    no_subscribers: int = 0
    pruned: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class EmailDeliveryStats:
    sent: int = 0
    skipped_already_sent: int = 0
    skipped: int = 0
    missing_address: int = 0
    failed: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(frozen=True)
class PushTarget:
    """Detached copy of an endpoint so a rollback never forces a reload."""

    id: UUID
    info: Dict[str, Any]


def build_push_payload(record: ReminderRecord) -> PushPayload:
    return PushPayload(
        title=record.message,
        tag=record.tag,
        data={
            "subscriptionId": str(record.subscription_id),
            "reminderType": record.kind.value,
            "priority": record.kind.value,
            "url": record.url,
        },
    )


class ReminderNotifier:
    """Delivers due reminders through web push and, when enabled, email."""

    def __init__(
        self,
        session: AsyncSession,
        push_sender: PushSender = send_push,
        email_sender: EmailSender = send_reminder_email,
    ) -> None:
        self.session = session
        self.ledger = DeliveryLedger(session)
        self.endpoints = PushSubscriptionRepo(session)
        self.push_sender = push_sender
        self.email_sender = email_sender

    async def deliver_push(self, records: Sequence[ReminderRecord]) -> PushDeliveryStats:
        stats = PushDeliveryStats(processed=len(records))

        by_owner: Dict[UUID, List[ReminderRecord]] = defaultdict(list)
        for record in records:
            by_owner[record.owner_id].append(record)

        for owner_id, items in by_owner.items():
            try:
                targets = [
                    PushTarget(id=endpoint.id, info=endpoint.subscription_info())
                    for endpoint in await self.endpoints.list_active(owner_id)
                ]
            except Exception as exc:
                logger.error(f"Could not load push endpoints for user {owner_id}: {exc}")
                stats.failed += len(items)
                continue

            for position, record in enumerate(items):
                if not targets:
                    stats.no_subscribers += len(items) - position
                    break
                try:
                    outcome, pruned = await self._deliver_push_record(record, targets)
                    await self.session.commit()
                except Exception as exc:
                    logger.exception(f"Push delivery failed for subscription {record.subscription_id}: {exc}")
                    await self.session.rollback()
                    stats.failed += 1
                    continue

                if outcome is Outcome.DELIVERED:
                    stats.delivered += 1
                elif outcome is Outcome.ALREADY_SENT:
                    stats.skipped_already_sent += 1
                elif outcome is Outcome.SKIPPED:
                    stats.skipped += 1
                else:
                    stats.failed += 1
                stats.pruned += len(pruned)
                targets = [target for target in targets if target.id not in pruned]

        logger.info(f"Push delivery finished: {stats.as_dict()}")
        return stats

    async def _deliver_push_record(
        self, record: ReminderRecord, targets: List[PushTarget]
    ) -> Tuple[Outcome, Set[UUID]]:
        pruned: Set[UUID] = set()
        if await self.ledger.has_been_sent(
            record.subscription_id, record.kind, record.billing_date, Channel.PUSH
        ):
            return Outcome.ALREADY_SENT, pruned

        payload = build_push_payload(record)
        results = await asyncio.gather(
            *[self.push_sender(target.info, payload) for target in targets],
            return_exceptions=True,
        )

        sent_any = False
        all_skipped = True
        for target, result in zip(targets, results):
            if isinstance(result, Exception):
                all_skipped = False
                logger.warning(f"Push to endpoint {target.id} raised: {result}")
                continue
            if not result.skipped:
                all_skipped = False
            if result.sent:
                sent_any = True
            elif result.gone:
                await self.endpoints.deactivate(target.id)
                pruned.add(target.id)
                logger.info(f"Pruned push endpoint {target.id} (status {result.status})")
            elif not result.skipped:
                logger.warning(
                    f"Push to endpoint {target.id} failed with status {result.status}: {result.error}"
                )

        if not sent_any:
            return (Outcome.SKIPPED if all_skipped else Outcome.NOT_DELIVERED), pruned

        await self.ledger.record(
            record.subscription_id, record.owner_id, record.kind, record.billing_date, Channel.PUSH
        )
        return Outcome.DELIVERED, pruned

    async def deliver_email(self, records: Sequence[ReminderRecord]) -> EmailDeliveryStats:
        stats = EmailDeliveryStats()
        addressable = with_email_address(list(records))
        stats.missing_address = len(records) - len(addressable)

        for record in addressable:
            try:
                outcome = await self._deliver_email_record(record)
                await self.session.commit()
            except Exception as exc:
                logger.exception(f"Email delivery failed for subscription {record.subscription_id}: {exc}")
                await self.session.rollback()
                stats.failed += 1
                continue

            if outcome is Outcome.DELIVERED:
                stats.sent += 1
            elif outcome is Outcome.ALREADY_SENT:
                stats.skipped_already_sent += 1
            elif outcome is Outcome.SKIPPED:
                stats.skipped += 1
            else:
                stats.failed += 1

        logger.info(f"Email delivery finished: {stats.as_dict()}")
        return stats

    async def _deliver_email_record(self, record: ReminderRecord) -> Outcome:
        if await self.ledger.has_been_sent(
            record.subscription_id, record.kind, record.billing_date, Channel.EMAIL
        ):
            return Outcome.ALREADY_SENT

        result = await self.email_sender(record)
        if result.skipped:
            return Outcome.SKIPPED
        if not result.sent:
            return Outcome.NOT_DELIVERED

        await self.ledger.record(
            record.subscription_id, record.owner_id, record.kind, record.billing_date, Channel.EMAIL
        )
        return Outcome.DELIVERED
