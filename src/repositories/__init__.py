"""Repository layer package."""

from src.repositories.push_subscription_repo import PushSubscriptionRepo
from src.repositories.reminder_log_repo import ReminderLogRepo
from src.repositories.subscription_repo import SubscriptionRepo
from src.repositories.user_repo import UserRepo

__all__ = [
    "PushSubscriptionRepo",
    "ReminderLogRepo",
    "SubscriptionRepo",
    "UserRepo",
]
