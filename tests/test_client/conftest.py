"""
Fakes for the reminder client: a manual clock and recording surfaces.
"""
import datetime as dt
import heapq
from typing import Any, Callable, List, Optional
from uuid import UUID, uuid4

import pytest

from src.client.alarm import ReminderAlarm
from src.client.display_counter import DailyDisplayCounter
from src.client.state import NotificationClientState
from src.client.storage import MemoryStore
from src.schemas.enums import ReminderKind
from src.schemas.reminder import ReminderRecord


START = dt.datetime(2024, 4, 1, 6, 0, tzinfo=dt.timezone.utc)


class FakeHandle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimers:
    """Timers driven by :meth:`advance` instead of the event loop."""

    def __init__(self, start: dt.datetime = START) -> None:
        self._now = start.timestamp()
        self._queue: List[tuple] = []
        self._seq = 0

    def now(self) -> float:
        return self._now

    def _push(self, due: float, handle: FakeHandle, callback: Callable[[], Any], interval: Optional[float]) -> None:
        self._seq += 1
        heapq.heappush(self._queue, (due, self._seq, handle, callback, interval))

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeHandle:
        handle = FakeHandle()
        self._push(self._now + max(delay, 0.0), handle, lambda: callback(*args), None)
        return handle

    def call_every(self, interval: float, callback: Callable[[], Any]) -> FakeHandle:
        handle = FakeHandle()
        self._push(self._now + interval, handle, callback, interval)
        return handle

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback, interval = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self._now = due
            if interval is not None:
                self._push(due + interval, handle, callback, interval)
            callback()
        self._now = target

    @property
    def pending(self) -> int:
        return sum(1 for entry in self._queue if not entry[2].cancelled)


class FakeSound:
    def __init__(self) -> None:
        self.played: List[ReminderKind] = []

    def play(self, kind: ReminderKind) -> None:
        self.played.append(kind)


class FakeDisplayed:
    def __init__(self, title: str) -> None:
        self.title = title
        self.closed = False

    def close(self) -> None:
        self.closed = True


class FakeNotifications:
    def __init__(self, granted: bool = True) -> None:
        self.granted = granted
        self.shown: List[dict] = []

    def permission_granted(self) -> bool:
        return self.granted

    def show(self, title, options, on_click, on_close):
        displayed = FakeDisplayed(title)
        self.shown.append(
            {"title": title, "options": options, "on_click": on_click, "on_close": on_close, "handle": displayed}
        )
        return displayed


class FakeToasts:
    def __init__(self) -> None:
        self.shown: List[dict] = []

    def show(self, message, duration, action_label, on_action, on_dismiss, on_auto_close):
        self.shown.append(
            {
                "message": message,
                "duration": duration,
                "action_label": action_label,
                "on_action": on_action,
                "on_dismiss": on_dismiss,
                "on_auto_close": on_auto_close,
            }
        )


class FakeNavigator:
    def __init__(self) -> None:
        self.visited: List[str] = []

    def navigate(self, url: str) -> None:
        self.visited.append(url)


def make_reminder(
    kind: ReminderKind = ReminderKind.TODAY,
    billing_date: dt.date = dt.date(2024, 4, 1),
    subscription_id: Optional[UUID] = None,
    name: str = "Netflix",
) -> ReminderRecord:
    return ReminderRecord(
        kind=kind,
        subscription_id=subscription_id or uuid4(),
        subscription_name=name,
        owner_id=uuid4(),
        owner_name="Ada",
        amount="15.99",
        currency="USD",
        billing_date=billing_date,
        message=f"{name} billing is due {kind.value}",
    )


@pytest.fixture
def timers() -> FakeTimers:
    return FakeTimers()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def sound() -> FakeSound:
    return FakeSound()


@pytest.fixture
def notifications() -> FakeNotifications:
    return FakeNotifications()


@pytest.fixture
def toasts() -> FakeToasts:
    return FakeToasts()


@pytest.fixture
def navigator() -> FakeNavigator:
    return FakeNavigator()


@pytest.fixture
def build_state(store, timers, notifications, toasts, sound, navigator):
    """Factory so a test can rebuild the client over the same store, as after a restart."""

    def _build(**overrides) -> NotificationClientState:
        state_store = overrides.pop("store", store)
        state_timers = overrides.pop("timers", timers)
        counter = DailyDisplayCounter(state_store, limit=2, today=lambda: dt.date(2024, 4, 1))
        alarm = ReminderAlarm(state_timers, sound, store=state_store, min_seconds=60)
        options = dict(
            notifications=notifications,
            toasts=toasts,
            navigator=navigator,
            counter=counter,
            alarm=alarm,
            tz=dt.timezone.utc,
        )
        options.update(overrides)
        return NotificationClientState(state_store, state_timers, **options)

    return _build


@pytest.fixture
def state(build_state) -> NotificationClientState:
    return build_state()


@pytest.fixture
def reminder():
    return make_reminder


@pytest.fixture
def timers_at():
    """Fresh clock starting at ``(hour, minute)`` UTC on 2024-04-01."""

    def _at(hour: int, minute: int = 0) -> FakeTimers:
        return FakeTimers(dt.datetime(2024, 4, 1, hour, minute, tzinfo=dt.timezone.utc))

    return _at
