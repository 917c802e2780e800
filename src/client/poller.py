"""Periodic reminder refresh for a long-running client."""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from src.client.api import ReminderApiClient, ReminderApiError
from src.client.state import NotificationClientState
from src.core.config import settings
from src.schemas.reminder import ReminderRecord


logger = logging.getLogger(__name__)


class ReminderPoller:
    """Fetches due reminders every ``interval`` seconds and on focus."""

    def __init__(
        self,
        api: ReminderApiClient,
        state: NotificationClientState,
        interval: Optional[float] = None,
    ) -> None:
        self.api = api
        self.state = state
        self.interval = interval if interval is not None else settings.reminders.client_refresh_seconds
        self._stop = asyncio.Event()

    async def refresh(self) -> Optional[List[ReminderRecord]]:
        try:
            reminders = await self.api.fetch_reminders()
        except ReminderApiError as exc:
            logger.warning(f"Could not fetch reminders, retrying next tick: {exc.message}")
            return None

        self.state.reconcile_scheduled(reminders)
        if reminders:
            self.state.schedule_reminder_notifications(reminders)
            self.state.present_toasts(reminders)
        logger.debug(f"Fetched {len(reminders)} due reminders")
        return reminders

    async def on_focus(self) -> Optional[List[ReminderRecord]]:
        return await self.refresh()

    async def run(self) -> None:
        self.state.init()
        try:
            while not self._stop.is_set():
                await self.refresh()
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
                except asyncio.TimeoutError:
                    pass
        finally:
            self.state.teardown()

    def stop(self) -> None:
        self._stop.set()
