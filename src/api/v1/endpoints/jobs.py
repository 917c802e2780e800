"""Cron-triggered job endpoints for deployments without the in-process scheduler."""
from __future__ import annotations

import hmac
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Header, HTTPException, status

from src.core.config import settings
from src.core.exceptions import ConfigurationError
from src.db.session import get_session_factory
from src.services.jobs import run_advancement_job, run_reminder_job


router = APIRouter(prefix="/jobs", tags=["jobs"])


def _require_cron_secret(x_cron_secret: Optional[str]) -> None:
    if not settings.CRON_SECRET:
        raise ConfigurationError("Cron secret is not configured")
    if not x_cron_secret or not hmac.compare_digest(x_cron_secret, settings.CRON_SECRET):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid cron secret",
        )


@router.post("/reminders", status_code=status.HTTP_202_ACCEPTED)
async def trigger_reminders(
    background_tasks: BackgroundTasks,
    x_cron_secret: Optional[str] = Header(default=None),
):
    _require_cron_secret(x_cron_secret)
    background_tasks.add_task(run_reminder_job, get_session_factory())
    return {"status": "accepted", "job": "reminders"}


@router.post("/advance-billing-dates", status_code=status.HTTP_202_ACCEPTED)
async def trigger_advancement(
    background_tasks: BackgroundTasks,
    x_cron_secret: Optional[str] = Header(default=None),
):
    _require_cron_secret(x_cron_secret)
    background_tasks.add_task(run_advancement_job, get_session_factory())
    return {"status": "accepted", "job": "advance_billing_dates"}
