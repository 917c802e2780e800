"""Per-subscription, per-day cap on displayed reminders."""
from __future__ import annotations

import datetime as dt
import json
import logging
from typing import Callable, Dict, Optional

from src.client.storage import KeyValueStore
from src.core.config import settings


logger = logging.getLogger(__name__)

DAILY_KEY_PREFIX = "reminders:daily:v1:"


class DailyDisplayCounter:
    """
    Counts how often each subscription was surfaced on the current local day.

    Counts live under one key per day, so yesterday's counts simply stop
    being read at midnight. Unreadable state counts as zero.
    """

    def __init__(
        self,
        store: KeyValueStore,
        limit: Optional[int] = None,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.store = store
        self.limit = limit if limit is not None else settings.reminders.daily_display_limit
        self._today = today

    def _key(self) -> str:
        return f"{DAILY_KEY_PREFIX}{self._today().isoformat()}"

    def _load(self) -> Dict[str, int]:
        raw = self.store.get(self._key())
        if not raw:
            return {}
        try:
            counts = json.loads(raw)
        except ValueError:
            logger.warning("Daily reminder counts are corrupt; starting from zero")
            return {}
        return counts if isinstance(counts, dict) else {}

    def count(self, subscription_id: str) -> int:
        try:
            return int(self._load().get(str(subscription_id), 0))
        except (TypeError, ValueError):
            return 0

    def can_show(self, subscription_id: Optional[str]) -> bool:
        if not subscription_id:
            return True
        return self.count(subscription_id) < self.limit

    def record_shown(self, subscription_id: Optional[str]) -> None:
        if not subscription_id:
            return
        counts = self._load()
        key = str(subscription_id)
        try:
            counts[key] = int(counts.get(key, 0)) + 1
        except (TypeError, ValueError):
            counts[key] = 1
        self.store.set(self._key(), json.dumps(counts))
