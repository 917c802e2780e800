"""Reminder email transport over SMTP."""
from __future__ import annotations

import asyncio
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from src.core.config import settings
from src.schemas.reminder import ReminderRecord
from src.services.reminders import EmailContent, build_email_content


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailResult:
    sent: bool = False
    skipped: bool = False
    error: Optional[str] = None


def _build_message(to_email: str, content: EmailContent) -> MIMEMultipart:
    config = settings.email
    message = MIMEMultipart("alternative")
    message["Subject"] = content.subject
    message["From"] = formataddr((config.from_name, config.from_email or ""))
    message["To"] = to_email
    message.attach(MIMEText(content.text, "plain", "utf-8"))
    message.attach(MIMEText(content.html, "html", "utf-8"))
    return message


def _send_blocking(to_email: str, content: EmailContent) -> None:
    config = settings.email
    with smtplib.SMTP(config.smtp_host, config.smtp_port, timeout=30) as server:
        if config.smtp_use_tls:
            server.starttls()
        if config.smtp_username:
            server.login(config.smtp_username, config.smtp_password or "")
        server.sendmail(config.from_email, [to_email], _build_message(to_email, content).as_string())


async def send_reminder_email(record: ReminderRecord) -> EmailResult:
    """
    Send the reminder email for ``record``.

    Skips silently when SMTP is not configured or the owner has no address.
    """
    if not settings.email.configured:
        logger.debug("SMTP is not configured; skipping reminder email")
        return EmailResult(skipped=True)
    if not record.owner_email:
        return EmailResult(skipped=True)

    content = build_email_content(record, settings.email.app_url)
    try:
        await asyncio.to_thread(_send_blocking, record.owner_email, content)
    except (smtplib.SMTPException, OSError) as exc:
        logger.error(f"Failed to send reminder email for {record.subscription_id}: {exc}")
        return EmailResult(error=str(exc))
    logger.info(f"Reminder email sent for {record.subscription_id} ({record.kind.value})")
    return EmailResult(sent=True)
