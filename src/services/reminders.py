"""
Reminder classification, aggregation and message formatting
"""
from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.clock import DateLike, start_of_day, to_local_date
from src.repositories.subscription_repo import SubscriptionRepo
from src.schemas.enums import ReminderKind
from src.schemas.reminder import ReminderRecord


logger = logging.getLogger(__name__)

UNKNOWN_OWNER = "Unknown"

_CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "INR": "₹",
    "BRL": "R$",
    "CAD": "CA$",
    "AUD": "A$",
    "CHF": "CHF ",
    "KRW": "₩",
}
_ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW"}


def classify(next_billing_date: Optional[DateLike], today: dt.date) -> Optional[ReminderKind]:
    """Return TODAY or TOMORROW when the billing date falls on either, else ``None``."""

    if next_billing_date is None:
        return None
    billing_day = to_local_date(next_billing_date)
    if billing_day == today:
        return ReminderKind.TODAY
    if billing_day == today + dt.timedelta(days=1):
        return ReminderKind.TOMORROW
    return None


def format_amount(amount: Union[str, Decimal, float, None], currency: Optional[str]) -> str:
    """Render ``amount`` with the currency symbol, e.g. ``$1,299.00`` or ``SEK 49.00``."""

    code = (currency or "USD").upper()
    try:
        value = Decimal(str(amount if amount is not None else "0"))
    except InvalidOperation:
        value = Decimal("0")
    if code in _ZERO_DECIMAL_CURRENCIES:
        number = f"{value:,.0f}"
    else:
        number = f"{value:,.2f}"
    symbol = _CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} {number}"
    if number.startswith("-"):
        return f"-{symbol}{number[1:]}"
    return f"{symbol}{number}"


def format_billing_date(value: DateLike) -> str:
    """``Apr 1, 2024``"""

    day = to_local_date(value)
    return f"{day:%b} {day.day}, {day.year}"


def format_reminder_message(
    subscription_name: str,
    amount: Union[str, Decimal],
    currency: str,
    billing_date: DateLike,
    kind: ReminderKind,
) -> str:
    formatted_date = format_billing_date(billing_date)
    formatted_amount = format_amount(amount, currency)
    if kind is ReminderKind.TODAY:
        return f"💰 {subscription_name} billing is due today ({formatted_date}) - {formatted_amount}"
    return f"⏰ {subscription_name} billing is due tomorrow ({formatted_date}) - {formatted_amount}"


def build_notification_text(record: ReminderRecord) -> Tuple[str, str]:
    """Title and body for a system notification."""

    formatted_date = format_billing_date(record.billing_date)
    formatted_amount = format_amount(record.amount, record.currency)
    if record.kind is ReminderKind.TODAY:
        title = f"💰 {record.subscription_name} billing due today!"
    else:
        title = f"⏰ {record.subscription_name} billing due tomorrow"
    body = (
        f"{record.subscription_name} billing is due {record.kind.value} "
        f"({formatted_date}) - {formatted_amount}"
    )
    return title, body


@dataclass(frozen=True)
class EmailContent:
    subject: str
    text: str
    html: str


def build_email_content(record: ReminderRecord, app_url: str = "") -> EmailContent:
    formatted_amount = format_amount(record.amount, record.currency)
    date_str = format_billing_date(record.billing_date)
    greeting_name = record.owner_name if record.owner_name != UNKNOWN_OWNER else "there"
    link = f"{app_url.rstrip('/')}{record.url}" if app_url else record.url

    if record.kind is ReminderKind.TODAY:
        subject = f"Billing Today: {record.subscription_name} - {formatted_amount}"
        heading = "💰 Due Today"
        phrase = "is due today"
    else:
        subject = f"Billing Tomorrow: {record.subscription_name} - {formatted_amount}"
        heading = "⏰ Due Tomorrow"
        phrase = "will be due tomorrow"

    text = (
        f"Hi {greeting_name},\n\n"
        f"This is a reminder that {record.subscription_name} {phrase} "
        f"({date_str}) for {formatted_amount}.\n\n"
        f"View it here: {link}\n"
    )
    html = f"""
    <div style="font-family:Arial,sans-serif;line-height:1.6;color:#0f172a">
      <h2 style="margin:0 0 12px">{heading}</h2>
      <p>Hi {greeting_name},</p>
      <p>
        This is a reminder that <strong>{record.subscription_name}</strong> {phrase}
        ({date_str}) for <strong>{formatted_amount}</strong>.
      </p>
      <p><a href="{link}">View subscription</a></p>
      <p style="font-size:12px;color:#475569">
        You are receiving this because you set a next billing date for this subscription.
      </p>
    </div>
    """
    return EmailContent(subject=subject, text=text, html=html)


def _build_record(subscription, owner_name: Optional[str], owner_email: Optional[str], today: dt.date):
    kind = classify(subscription.next_billing_date, today)
    if kind is None:
        return None
    amount = f"{Decimal(str(subscription.amount or 0)):.2f}"
    billing_day = to_local_date(subscription.next_billing_date)
    return ReminderRecord(
        kind=kind,
        subscription_id=subscription.id,
        subscription_name=subscription.name,
        owner_id=subscription.user_id,
        owner_name=owner_name or UNKNOWN_OWNER,
        owner_email=owner_email or None,
        amount=amount,
        currency=subscription.currency or "USD",
        billing_date=billing_day,
        message=format_reminder_message(
            subscription.name, amount, subscription.currency or "USD", billing_day, kind
        ),
    )


async def _collect(
    session: AsyncSession, today: dt.date, user_id: Optional[UUID] = None
) -> List[ReminderRecord]:
    repo = SubscriptionRepo(session)
    rows = await repo.due_in_window(
        start_of_day(today),
        start_of_day(today + dt.timedelta(days=2)),
        user_id=user_id,
    )

    records: List[ReminderRecord] = []
    for subscription, owner_name, owner_email in rows:
        record = _build_record(subscription, owner_name, owner_email, today)
        if record is not None:
            records.append(record)
    logger.debug(f"Collected {len(records)} due reminders for {today} (candidates={len(rows)})")
    return records


async def collect_due_reminders(session: AsyncSession, today: dt.date) -> List[ReminderRecord]:
    """Reminders due today or tomorrow across all users."""

    return await _collect(session, today)


async def collect_due_reminders_for_user(
    session: AsyncSession, user_id: UUID, today: dt.date
) -> List[ReminderRecord]:
    """Reminders due today or tomorrow for one user."""

    return await _collect(session, today, user_id=user_id)


def with_email_address(records: List[ReminderRecord]) -> List[ReminderRecord]:
    """Only records whose owner has a known address can go through email."""

    return [record for record in records if record.owner_email]
