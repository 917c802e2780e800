"""
Audible reminder alarm

A ``today`` reminder starts a repeating tone that keeps going for at least
``min_seconds``; a second start while ringing only pushes the deadline out.
``tomorrow`` reminders get a single chime instead.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from src.client.storage import KeyValueStore
from src.client.surfaces import SoundPlayer
from src.client.timers import TimerHandle, Timers
from src.core.config import settings
from src.schemas.enums import ReminderKind


logger = logging.getLogger(__name__)

SOUND_ENABLED_KEY = "reminders:sound-enabled"
REPEAT_INTERVAL_SECONDS = 3.0


class AlarmState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class ReminderAlarm:
    def __init__(
        self,
        timers: Timers,
        sound: SoundPlayer,
        is_visible: Callable[[], bool] = lambda: True,
        store: Optional[KeyValueStore] = None,
        min_seconds: Optional[float] = None,
        repeat_interval: float = REPEAT_INTERVAL_SECONDS,
    ) -> None:
        self.timers = timers
        self.sound = sound
        self.is_visible = is_visible
        self.store = store
        self.min_seconds = max(
            1.0, float(min_seconds if min_seconds is not None else settings.reminders.alarm_min_seconds)
        )
        self.repeat_interval = repeat_interval

        self.state = AlarmState.IDLE
        self.until = 0.0
        self.kind = ReminderKind.TODAY
        self._repeat: Optional[TimerHandle] = None
        self._hard_stop: Optional[TimerHandle] = None

    @property
    def sound_enabled(self) -> bool:
        if self.store is None:
            return True
        saved = self.store.get(SOUND_ENABLED_KEY)
        return saved is None or saved == "1"

    def set_sound_enabled(self, enabled: bool) -> None:
        if self.store is not None:
            self.store.set(SOUND_ENABLED_KEY, "1" if enabled else "0")
        if not enabled:
            self.stop()

    @property
    def active(self) -> bool:
        return self.state is AlarmState.ACTIVE

    def remaining(self) -> float:
        if not self.active:
            return 0.0
        return max(0.0, self.until - self.timers.now())

    def _can_play(self) -> bool:
        return self.sound_enabled and self.is_visible()

    def _play(self, kind: ReminderKind) -> None:
        try:
            self.sound.play(kind)
        except Exception as exc:
            logger.warning(f"Reminder sound failed: {exc}")

    def play_chime(self, kind: ReminderKind = ReminderKind.TOMORROW) -> bool:
        """One soft chime; returns ``False`` when sound is muted or hidden."""

        if not self._can_play():
            return False
        self._play(kind)
        return True

    def start(self, kind: ReminderKind = ReminderKind.TODAY, min_seconds: Optional[float] = None) -> bool:
        if not self._can_play():
            return False

        duration = max(self.min_seconds, float(min_seconds or 0))
        now = self.timers.now()

        if self.active:
            deadline = now + duration
            if deadline > self.until:
                self.until = deadline
                self._arm_hard_stop(deadline - now)
                logger.debug(f"Alarm extended by {duration:.0f}s")
            return True

        self.state = AlarmState.ACTIVE
        self.kind = kind
        self.until = now + duration
        self._play(kind)
        self._repeat = self.timers.call_every(self.repeat_interval, self._tick)
        self._arm_hard_stop(duration)
        logger.debug(f"Alarm started for {duration:.0f}s")
        return True

    def _arm_hard_stop(self, delay: float) -> None:
        if self._hard_stop is not None:
            self._hard_stop.cancel()
        self._hard_stop = self.timers.call_later(delay, self.stop)

    def _tick(self) -> None:
        if not self.active:
            return
        if not self.is_visible():
            return
        if self.timers.now() >= self.until:
            self.stop()
            return
        self._play(self.kind)

    def stop(self) -> None:
        if self._repeat is not None:
            self._repeat.cancel()
            self._repeat = None
        if self._hard_stop is not None:
            self._hard_stop.cancel()
            self._hard_stop = None
        if self.active:
            logger.debug("Alarm stopped")
        self.state = AlarmState.IDLE
        self.until = 0.0
