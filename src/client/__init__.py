"""Client-side reminder presentation."""

from src.client.alarm import AlarmState, ReminderAlarm
from src.client.api import ReminderApiClient, ReminderApiError
from src.client.display_counter import DailyDisplayCounter
from src.client.poller import ReminderPoller
from src.client.state import PRESENTATION, NotificationClientState
from src.client.storage import JsonFileStore, MemoryStore
from src.client.timers import AsyncioTimers

__all__ = [
    "AlarmState",
    "AsyncioTimers",
    "DailyDisplayCounter",
    "JsonFileStore",
    "MemoryStore",
    "NotificationClientState",
    "PRESENTATION",
    "ReminderAlarm",
    "ReminderApiClient",
    "ReminderApiError",
    "ReminderPoller",
]
