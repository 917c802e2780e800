"""HTTP client for the reminder API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from src.core.config import settings
from src.schemas.reminder import ReminderRecord


logger = logging.getLogger(__name__)


class ReminderApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ReminderApiClient:
    """
    Thin async wrapper over the v1 endpoints.

    Pass ``client`` to reuse an existing :class:`httpx.AsyncClient` (tests hand
    in one built on ``httpx.ASGITransport``).
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ) -> None:
        self.prefix = f"{settings.API_PREFIX}/v1"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {token}"}

    async def __aenter__(self) -> "ReminderApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(
                method, f"{self.prefix}{path}", headers=self._headers, **kwargs
            )
        except httpx.HTTPError as exc:
            raise ReminderApiError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            try:
                message = response.json().get("message") or response.text
            except ValueError:
                message = response.text
            raise ReminderApiError(
                f"{method} {path} returned {response.status_code}: {message}",
                status_code=response.status_code,
            )
        return response

    async def fetch_reminders(self) -> List[ReminderRecord]:
        response = await self._request("GET", "/reminders")
        try:
            payload = response.json()
            return [ReminderRecord.model_validate(item) for item in payload.get("reminders") or []]
        except (ValidationError, ValueError, AttributeError) as exc:
            raise ReminderApiError(f"GET /reminders returned an unreadable body: {exc}") from exc

    async def subscribe_push(
        self, endpoint: str, p256dh: str, auth: str, user_agent: Optional[str] = None
    ) -> Dict[str, Any]:
        body = {"endpoint": endpoint, "keys": {"p256dh": p256dh, "auth": auth}, "userAgent": user_agent}
        response = await self._request("POST", "/push/subscribe", json=body)
        return response.json()

    async def unsubscribe_push(self, endpoint: str) -> bool:
        try:
            await self._request("POST", "/push/unsubscribe", json={"endpoint": endpoint})
        except ReminderApiError as exc:
            if exc.status_code == 404:
                return False
            raise
        return True

    async def fetch_push_public_key(self) -> Optional[str]:
        """VAPID public key, or ``None`` when the server has push disabled."""

        try:
            response = await self._request("GET", "/push/public-key")
        except ReminderApiError as exc:
            if exc.status_code == 503:
                logger.warning("Server has no VAPID key; push subscription skipped")
                return None
            raise
        return response.json().get("publicKey")
