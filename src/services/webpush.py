"""Web push transport built on pywebpush."""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from pywebpush import WebPushException, webpush

from src.core.config import settings


logger = logging.getLogger(__name__)

GONE_STATUSES = frozenset({404, 410})

_missing_keys_warned = False


@dataclass(frozen=True)
class PushPayload:
    """Notification payload read by the service worker."""

    title: str
    body: Optional[str] = None
    tag: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(
            {"title": self.title, "body": self.body, "tag": self.tag, "data": self.data},
            ensure_ascii=False,
            default=str,
        )


@dataclass(frozen=True)
class PushResult:
    sent: bool = False
    skipped: bool = False
    status: Optional[int] = None
    error: Optional[str] = None

    @property
    def gone(self) -> bool:
        """Endpoint no longer exists and should be pruned."""

        return self.status in GONE_STATUSES


def _warn_missing_keys() -> None:
    global _missing_keys_warned
    if not _missing_keys_warned:
        logger.warning("VAPID keys are not configured; push notifications will be skipped")
        _missing_keys_warned = True


def _send_blocking(subscription_info: Dict[str, Any], payload: PushPayload) -> PushResult:
    push = settings.push
    try:
        webpush(
            subscription_info=subscription_info,
            data=payload.to_json(),
            vapid_private_key=push.vapid_private_key,
            vapid_claims={"sub": push.vapid_subject},
            ttl=push.ttl_seconds,
        )
    except WebPushException as exc:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None) or 0
        return PushResult(status=status, error=str(exc))
    return PushResult(sent=True)


async def send_push(subscription_info: Dict[str, Any], payload: PushPayload) -> PushResult:
    """
    Deliver ``payload`` to one endpoint.

    Never raises for transport problems: a missing configuration yields
    ``skipped`` and protocol failures carry the HTTP status.
    """
    if not settings.push.configured:
        _warn_missing_keys()
        return PushResult(skipped=True)
    return await asyncio.to_thread(_send_blocking, subscription_info, payload)
