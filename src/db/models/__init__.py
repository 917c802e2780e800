"""Database models package exports."""

from src.db.models.push_subscription import PushSubscription
from src.db.models.reminder_log import ReminderLog
from src.db.models.subscription import Subscription
from src.db.models.user import User

__all__ = [
    "PushSubscription",
    "ReminderLog",
    "Subscription",
    "User",
]
