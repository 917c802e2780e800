"""Endpoints for managing the caller's subscriptions."""
from __future__ import annotations

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import require_auth
from src.core.exceptions import NotFoundError
from src.repositories.subscription_repo import SubscriptionRepo
from src.repositories.user_repo import UserRepo
from src.schemas.subscription import SubscriptionCreate, SubscriptionRead, SubscriptionUpdate
from src.services.limits import check_rate_limit


router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.post("", response_model=SubscriptionRead, status_code=status.HTTP_201_CREATED)
async def create_subscription(
    body: SubscriptionCreate,
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = auth["user_id"]
    await check_rate_limit(str(user_id))

    if await UserRepo(db).get(user_id) is None:
        raise NotFoundError("User not found")

    fields = body.model_dump()
    fields["billing_cycle"] = body.billing_cycle.value
    return await SubscriptionRepo(db).create(user_id, **fields)


@router.get("", response_model=List[SubscriptionRead])
async def list_subscriptions(
    auth=Depends(require_auth), db: AsyncSession = Depends(get_db_session)
):
    user_id = auth["user_id"]
    await check_rate_limit(str(user_id))
    return await SubscriptionRepo(db).list_for_user(user_id)


@router.get("/{subscription_id}", response_model=SubscriptionRead)
async def get_subscription(
    subscription_id: UUID,
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = auth["user_id"]
    await check_rate_limit(str(user_id))

    subscription = await SubscriptionRepo(db).get_for_user(user_id, subscription_id)
    if not subscription:
        raise NotFoundError("Subscription not found")
    return subscription


@router.patch("/{subscription_id}", response_model=SubscriptionRead)
async def update_subscription(
    subscription_id: UUID,
    body: SubscriptionUpdate,
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    user_id = auth["user_id"]
    await check_rate_limit(str(user_id))

    repo = SubscriptionRepo(db)
    subscription = await repo.get_for_user(user_id, subscription_id)
    if not subscription:
        raise NotFoundError("Subscription not found")

    fields = body.model_dump(exclude_unset=True)
    if fields.get("billing_cycle") is not None:
        fields["billing_cycle"] = body.billing_cycle.value
    for required in ("name", "amount", "currency", "billing_cycle", "is_active", "is_auto_renew"):
        if required in fields and fields[required] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{required} cannot be null",
            )
    return await repo.update(subscription, **fields)
