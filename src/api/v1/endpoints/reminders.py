"""Endpoint returning the caller's due reminders."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import require_auth
from src.core.clock import local_today
from src.schemas.reminder import RemindersResponse
from src.services.limits import check_rate_limit
from src.services.reminders import collect_due_reminders_for_user


router = APIRouter(prefix="/reminders", tags=["reminders"])


@router.get("", response_model=RemindersResponse)
async def list_due_reminders(
    auth=Depends(require_auth), db: AsyncSession = Depends(get_db_session)
):
    user_id = auth["user_id"]
    await check_rate_limit(str(user_id))

    reminders = await collect_due_reminders_for_user(db, user_id, local_today())
    return RemindersResponse(reminders=reminders, count=len(reminders))
