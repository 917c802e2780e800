"""Endpoints for registering web push endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import require_auth
from src.core.config import settings
from src.core.exceptions import ConfigurationError, NotFoundError
from src.repositories.push_subscription_repo import PushSubscriptionRepo
from src.schemas.push import PushSubscribeBody, PushUnsubscribeBody
from src.services.limits import check_rate_limit


router = APIRouter(prefix="/push", tags=["push"])


@router.get("/public-key")
async def public_key():
    if not settings.push.vapid_public_key:
        raise ConfigurationError("Push notifications are not configured")
    return {"publicKey": settings.push.vapid_public_key}


@router.post("/subscribe", status_code=status.HTTP_201_CREATED)
async def subscribe(
    body: PushSubscribeBody,
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = auth["user_id"]
    await check_rate_limit(str(user_id))

    repo = PushSubscriptionRepo(db)
    subscription = await repo.upsert(
        user_id,
        body.endpoint,
        body.keys.p256dh,
        body.keys.auth,
        user_agent=body.userAgent,
    )
    return {"success": True, "id": str(subscription.id)}


@router.post("/unsubscribe")
async def unsubscribe(
    body: PushUnsubscribeBody,
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = auth["user_id"]
    await check_rate_limit(str(user_id))

    repo = PushSubscriptionRepo(db)
    if not await repo.deactivate_for_user(user_id, body.endpoint):
        raise NotFoundError("Push subscription not found")
    return {"success": True}
