"""
Client-side reminder presentation

:class:`NotificationClientState` owns everything the client does with a batch
of due reminders: system notifications scheduled for the reminder morning,
in-app toasts, the alarm and the daily display cap. Scheduled notifications
are written to the store so a restarted client can re-arm them in
:meth:`NotificationClientState.init`.
"""
from __future__ import annotations

import datetime as dt
import json
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from src.client.alarm import ReminderAlarm
from src.client.display_counter import DailyDisplayCounter
from src.client.storage import KeyValueStore
from src.client.surfaces import (
    DisplayedNotification,
    LoggingNavigator,
    LoggingNotificationSurface,
    LoggingSoundPlayer,
    LoggingToastSurface,
    Navigator,
    NotificationOptions,
    NotificationSurface,
    SoundPlayer,
    ToastSurface,
)
from src.client.timers import TimerHandle, Timers
from src.core.config import settings
from src.schemas.enums import ReminderKind
from src.schemas.reminder import ReminderRecord
from src.services.reminders import build_notification_text


logger = logging.getLogger(__name__)

SCHEDULE_KEY_PREFIX = "reminders:scheduled:"
TOAST_STAGGER_SECONDS = 0.3


@dataclass(frozen=True)
class Presentation:
    require_interaction: bool
    toast_duration: float
    alarm: bool
    alarm_min_seconds: float = 0.0
    safety_stop_seconds: Optional[float] = None


PRESENTATION: Dict[ReminderKind, Presentation] = {
    ReminderKind.TODAY: Presentation(
        require_interaction=True,
        toast_duration=10.0,
        alarm=True,
        alarm_min_seconds=60.0,
        safety_stop_seconds=65.0,
    ),
    ReminderKind.TOMORROW: Presentation(
        require_interaction=False,
        toast_duration=8.0,
        alarm=False,
    ),
}


def reminder_tag_prefix(subscription_id: str) -> str:
    return f"reminder-{subscription_id}"


def session_key(reminder: ReminderRecord) -> str:
    return f"{reminder.subscription_id}-{reminder.kind.value}-{reminder.billing_date.isoformat()}"


class NotificationClientState:
    def __init__(
        self,
        store: KeyValueStore,
        timers: Timers,
        notifications: Optional[NotificationSurface] = None,
        toasts: Optional[ToastSurface] = None,
        sound: Optional[SoundPlayer] = None,
        navigator: Optional[Navigator] = None,
        is_visible: Callable[[], bool] = lambda: True,
        counter: Optional[DailyDisplayCounter] = None,
        alarm: Optional[ReminderAlarm] = None,
        tz: Optional[dt.tzinfo] = None,
    ) -> None:
        self.store = store
        self.timers = timers
        self.notifications = notifications or LoggingNotificationSurface()
        self.toasts = toasts or LoggingToastSurface()
        self.navigator = navigator or LoggingNavigator()
        self.counter = counter or DailyDisplayCounter(store)
        self.alarm = alarm or ReminderAlarm(
            timers, sound or LoggingSoundPlayer(), is_visible=is_visible, store=store
        )
        # None means the machine's local zone
        self.tz = tz

        self._pending: Dict[str, TimerHandle] = {}
        self._pending_keys: Dict[str, str] = {}
        self._displayed: Dict[str, DisplayedNotification] = {}
        self._toast_timers: List[TimerHandle] = []
        self._shown: Set[str] = set()
        self._initialized = False

    # -- lifecycle -------------------------------------------------------

    def init(self) -> int:
        """Re-arm scheduled notifications persisted by a previous run."""

        if self._initialized:
            return 0
        self._initialized = True

        rearmed = 0
        now = self.timers.now()
        for key in sorted(self.store.keys(SCHEDULE_KEY_PREFIX)):
            entry = self._load_entry(key)
            if entry is None:
                self.store.delete(key)
                continue
            title, options, at = entry
            if at <= now:
                self.store.delete(key)
                self.show_notification(title, options)
                continue
            self._arm(key, title, options, at - now)
            rearmed += 1
        if rearmed:
            logger.info(f"Re-armed {rearmed} scheduled reminder notifications")
        return rearmed

    def teardown(self) -> None:
        """Cancel timers and the alarm; durable entries stay for the next run."""

        for handle in self._pending.values():
            handle.cancel()
        self._pending.clear()
        self._pending_keys.clear()
        for handle in self._toast_timers:
            handle.cancel()
        self._toast_timers.clear()
        self.alarm.stop()
        self._initialized = False

    # -- notifications ---------------------------------------------------

    def show_notification(
        self, title: str, options: Optional[NotificationOptions] = None
    ) -> Optional[DisplayedNotification]:
        options = options or NotificationOptions()
        if not self.notifications.permission_granted():
            logger.warning("Notification permission not granted")
            return None

        subscription_id = options.data.get("subscriptionId")
        if subscription_id and not self.counter.can_show(subscription_id):
            logger.debug(f"Daily limit reached for {subscription_id}; not showing {title!r}")
            return None

        tag = options.tag
        if tag and tag in self._displayed:
            self._displayed.pop(tag).close()

        try:
            handle = self.notifications.show(
                title,
                options,
                on_click=lambda: self._on_notification_click(options),
                on_close=lambda: self._on_notification_close(tag),
            )
        except Exception as exc:
            logger.error(f"Error showing notification {title!r}: {exc}")
            return None

        if subscription_id:
            self.counter.record_shown(subscription_id)
        if handle is not None and tag:
            self._displayed[tag] = handle

        priority = options.data.get("priority")
        if priority == ReminderKind.TODAY.value:
            self.alarm.start(ReminderKind.TODAY, PRESENTATION[ReminderKind.TODAY].alarm_min_seconds)
        else:
            self.alarm.play_chime(ReminderKind.TOMORROW)
        return handle

    def schedule_notification(
        self, title: str, options: NotificationOptions, at: Optional[float] = None
    ) -> Optional[str]:
        """
        Show ``title`` at epoch ``at``. Past or missing times show immediately.
        Returns the durable key of the scheduled entry.
        """
        if not self.notifications.permission_granted():
            logger.warning("Notification permission not granted")
            return None

        delay = (at - self.timers.now()) if at is not None else 0.0
        if delay <= 0:
            self.show_notification(title, options)
            return None

        key = f"{SCHEDULE_KEY_PREFIX}{options.tag or 'notification'}-{int(at * 1000)}"
        if options.tag:
            self._cancel_pending(options.tag)
        self.store.set(
            key,
            json.dumps({"title": title, "options": options.to_dict(), "schedule_time": at}),
        )
        self._arm(key, title, options, delay)
        return key

    def schedule_reminder_notifications(self, reminders: Iterable[ReminderRecord]) -> int:
        """Schedule one notification per reminder for the configured hour of the reminder day."""

        if not self.notifications.permission_granted():
            return 0

        scheduled = 0
        for reminder in reminders:
            subscription_id = str(reminder.subscription_id)
            if not self.counter.can_show(subscription_id):
                continue

            title, body = build_notification_text(reminder)
            options = NotificationOptions(
                body=body,
                tag=reminder.tag,
                require_interaction=PRESENTATION[reminder.kind].require_interaction,
                data={
                    "url": reminder.url,
                    "subscriptionId": subscription_id,
                    "priority": reminder.kind.value,
                    "billingDate": reminder.billing_date.isoformat(),
                },
            )
            at = self.reminder_time(reminder)
            if at > self.timers.now():
                if self.schedule_notification(title, options, at) is not None:
                    scheduled += 1
            else:
                self.show_notification(title, options)
        return scheduled

    def reminder_time(self, reminder: ReminderRecord) -> float:
        """Epoch seconds of the notification hour on the reminder day."""

        day = reminder.billing_date
        if reminder.kind is ReminderKind.TOMORROW:
            day = day - dt.timedelta(days=1)
        moment = dt.datetime.combine(day, dt.time(hour=settings.reminders.notification_hour))
        if self.tz is not None:
            moment = moment.replace(tzinfo=self.tz)
        else:
            moment = moment.astimezone()
        return moment.timestamp()

    def cancel_reminder_notifications(self, subscription_id: str) -> int:
        """Drop pending timers, durable entries and displayed notifications of one subscription."""

        prefix = reminder_tag_prefix(str(subscription_id))
        removed = 0

        for tag in [tag for tag in self._pending if tag.startswith(prefix)]:
            self._cancel_pending(tag)
            removed += 1

        for key in self.store.keys(SCHEDULE_KEY_PREFIX):
            entry = self._load_entry(key)
            tag = entry[1].tag if entry is not None else None
            if tag and tag.startswith(prefix):
                self.store.delete(key)

        for tag in [tag for tag in self._displayed if tag.startswith(prefix)]:
            self._displayed.pop(tag).close()
        return removed

    def scheduled_reminders(self) -> Set[Tuple[str, str, Optional[str]]]:
        """``(subscription_id, kind, billing_date)`` of every durable reminder entry."""

        scheduled = set()
        for key in self.store.keys(SCHEDULE_KEY_PREFIX):
            entry = self._load_entry(key)
            if entry is None:
                continue
            data = entry[1].data
            subscription_id = data.get("subscriptionId")
            if subscription_id:
                scheduled.add((str(subscription_id), data.get("priority"), data.get("billingDate")))
        return scheduled

    def reconcile_scheduled(self, reminders: Iterable[ReminderRecord]) -> int:
        """
        Cancel scheduled notifications of subscriptions that are no longer due
        as scheduled: deactivated, deleted or moved to another billing date.
        Returns the number of subscriptions cancelled.
        """
        current = {
            (str(reminder.subscription_id), reminder.kind.value, reminder.billing_date.isoformat())
            for reminder in reminders
        }
        stale = {entry[0] for entry in self.scheduled_reminders() if entry not in current}
        for subscription_id in sorted(stale):
            self.cancel_reminder_notifications(subscription_id)
            logger.info(f"Cancelled scheduled reminders for {subscription_id}")
        return len(stale)

    # -- toasts ----------------------------------------------------------

    def present_toasts(self, reminders: Iterable[ReminderRecord]) -> int:
        """Queue in-app toasts for reminders not yet shown in this session."""

        fresh = [reminder for reminder in reminders if session_key(reminder) not in self._shown]
        for index, reminder in enumerate(fresh):
            self._shown.add(session_key(reminder))
            handle = self.timers.call_later(index * TOAST_STAGGER_SECONDS, self._present_toast, reminder)
            self._toast_timers.append(handle)
        return len(fresh)

    def _present_toast(self, reminder: ReminderRecord) -> None:
        subscription_id = str(reminder.subscription_id)
        if not self.counter.can_show(subscription_id):
            return

        presentation = PRESENTATION[reminder.kind]
        if presentation.alarm:
            self.alarm.start(reminder.kind, presentation.alarm_min_seconds)
        else:
            self.alarm.play_chime(reminder.kind)

        self.toasts.show(
            reminder.message,
            duration=presentation.toast_duration,
            action_label="View",
            on_action=lambda: self._open(reminder.url),
            on_dismiss=self.alarm.stop,
            on_auto_close=self.alarm.stop,
        )
        self.counter.record_shown(subscription_id)

        if presentation.safety_stop_seconds is not None:
            self._toast_timers.append(
                self.timers.call_later(presentation.safety_stop_seconds, self._safety_stop)
            )

    def _safety_stop(self) -> None:
        # A later start may have pushed the deadline past this timer
        if self.timers.now() >= self.alarm.until:
            self.alarm.stop()

    # -- internals -------------------------------------------------------

    def _arm(self, key: str, title: str, options: NotificationOptions, delay: float) -> None:
        handle = self.timers.call_later(delay, self._fire, key, title, options)
        if options.tag:
            self._pending[options.tag] = handle
            self._pending_keys[options.tag] = key

    def _fire(self, key: str, title: str, options: NotificationOptions) -> None:
        if options.tag:
            self._pending.pop(options.tag, None)
            self._pending_keys.pop(options.tag, None)
        self.store.delete(key)
        self.show_notification(title, options)

    def _cancel_pending(self, tag: str) -> None:
        handle = self._pending.pop(tag, None)
        if handle is not None:
            handle.cancel()
        key = self._pending_keys.pop(tag, None)
        if key is not None:
            self.store.delete(key)

    def _load_entry(self, key: str):
        raw = self.store.get(key)
        if not raw:
            return None
        try:
            entry = json.loads(raw)
            return (
                str(entry["title"]),
                NotificationOptions.from_dict(entry.get("options") or {}),
                float(entry["schedule_time"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning(f"Dropping unreadable scheduled notification {key}: {exc}")
            return None

    def _open(self, url: str) -> None:
        self.alarm.stop()
        self.navigator.navigate(url)

    def _on_notification_click(self, options: NotificationOptions) -> None:
        self.alarm.stop()
        url = options.data.get("url")
        if url:
            self.navigator.navigate(url)
        if options.tag and options.tag in self._displayed:
            self._displayed.pop(options.tag).close()

    def _on_notification_close(self, tag: Optional[str]) -> None:
        self.alarm.stop()
        if tag:
            self._displayed.pop(tag, None)
