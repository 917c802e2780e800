"""APScheduler wiring for the hourly reminder and advancement jobs."""
from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.clock import reminder_zone
from src.core.config import settings
from src.db.session import get_session_factory
from src.services.jobs import run_advancement_job, run_reminder_job


logger = logging.getLogger(__name__)

REMINDER_JOB_ID = "reminders"
ADVANCE_JOB_ID = "advance_billing_dates"


async def _reminder_tick() -> None:
    await run_reminder_job(get_session_factory())


async def _advance_tick() -> None:
    await run_advancement_job(get_session_factory())


def build_scheduler() -> AsyncIOScheduler:
    """
    Reminder delivery runs at ``reminder_minute`` of every hour and billing
    date advancement at ``advance_minute``. A missed tick is coalesced into
    one run and a job never overlaps with itself.
    """
    config = settings.scheduler
    scheduler = AsyncIOScheduler(timezone=reminder_zone())
    job_options = {
        "coalesce": True,
        "max_instances": 1,
        "misfire_grace_time": config.misfire_grace_seconds,
        "replace_existing": True,
    }
    scheduler.add_job(
        _reminder_tick,
        CronTrigger(minute=config.reminder_minute, timezone=reminder_zone()),
        id=REMINDER_JOB_ID,
        name="Deliver due billing reminders",
        **job_options,
    )
    scheduler.add_job(
        _advance_tick,
        CronTrigger(minute=config.advance_minute, timezone=reminder_zone()),
        id=ADVANCE_JOB_ID,
        name="Advance past-due billing dates",
        **job_options,
    )
    logger.info(
        f"Scheduled reminders at :{config.reminder_minute:02d} and "
        f"advancement at :{config.advance_minute:02d} every hour"
    )
    return scheduler
