"""Enumerations shared by models, services and the client."""
from enum import Enum


class BillingCycle(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    ONE_TIME = "one_time"


class ReminderKind(str, Enum):
    """Which side of the billing date a reminder is for."""

    TODAY = "today"
    TOMORROW = "tomorrow"


class Channel(str, Enum):
    EMAIL = "email"
    PUSH = "push"
