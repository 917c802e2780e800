"""
Presentation surfaces the reminder client drives

Each surface is a Protocol so a desktop shell, a browser bridge or a test can
plug in its own implementation. The ``Logging*`` defaults write to the log,
which is enough for headless use.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol

from src.schemas.enums import ReminderKind


logger = logging.getLogger(__name__)

DEFAULT_ICON = "/icon-192x192.png"

Callback = Callable[[], None]


@dataclass
class NotificationOptions:
    body: Optional[str] = None
    tag: Optional[str] = None
    require_interaction: bool = False
    data: Dict[str, Any] = field(default_factory=dict)
    icon: str = DEFAULT_ICON
    badge: str = DEFAULT_ICON

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "NotificationOptions":
        known = {name: raw[name] for name in cls.__dataclass_fields__ if name in raw}
        return cls(**known)


class DisplayedNotification(Protocol):
    def close(self) -> None: ...


class NotificationSurface(Protocol):
    def permission_granted(self) -> bool: ...

    def show(
        self,
        title: str,
        options: NotificationOptions,
        on_click: Callback,
        on_close: Callback,
    ) -> Optional[DisplayedNotification]: ...


class ToastSurface(Protocol):
    def show(
        self,
        message: str,
        duration: float,
        action_label: str,
        on_action: Callback,
        on_dismiss: Callback,
        on_auto_close: Callback,
    ) -> None: ...


class SoundPlayer(Protocol):
    def play(self, kind: ReminderKind) -> None: ...


class Navigator(Protocol):
    def navigate(self, url: str) -> None: ...


class _LoggedNotification:
    def __init__(self, title: str, on_close: Callback) -> None:
        self.title = title
        self._on_close = on_close
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        logger.info(f"Notification closed: {self.title}")
        self._on_close()


class LoggingNotificationSurface:
    def permission_granted(self) -> bool:
        return True

    def show(self, title, options, on_click, on_close):
        logger.info(f"Notification: {title} | {options.body or ''} [{options.tag}]")
        return _LoggedNotification(title, on_close)


class LoggingToastSurface:
    def show(self, message, duration, action_label, on_action, on_dismiss, on_auto_close):
        logger.info(f"Toast ({duration:.0f}s): {message}")


class LoggingSoundPlayer:
    def play(self, kind: ReminderKind) -> None:
        logger.debug(f"Chime ({kind.value})")


class LoggingNavigator:
    def navigate(self, url: str) -> None:
        logger.info(f"Navigate to {url}")
