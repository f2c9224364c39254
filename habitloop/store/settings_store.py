"""Settings store: app settings persistence and reminder transitions.

Reminder-related setters commit the new settings synchronously and return a
ReminderTransition; executing its effects against the notification subsystem is
left to the caller (see habitloop.reminders.runner).
"""

import logging
import threading
from contextlib import contextmanager
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from habitloop.database.kv_store import KeyValueStore
from habitloop.models.constants import SETTINGS_STORAGE_KEY
from habitloop.models.settings import AppSettings, NotificationSettings
from habitloop.reminders import scheduler
from habitloop.reminders.scheduler import ReminderTransition

logger = logging.getLogger(__name__)

# Held across load, mutate and save so concurrent requests never interleave
_MUTATION_LOCK = threading.RLock()


class SettingsStore:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv
        self._settings = self._load()

    def _load(self) -> AppSettings:
        raw = self.kv.get(SETTINGS_STORAGE_KEY)
        if not raw:
            return AppSettings()
        try:
            return AppSettings.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.error(f"Falling back to default settings: {type(e).__name__}: {str(e)[:200]}")
            return AppSettings()

    @contextmanager
    def _mutation(self):
        with _MUTATION_LOCK:
            self._settings = self._load()
            yield

    def _commit(self, settings: AppSettings) -> AppSettings:
        self.kv.set(SETTINGS_STORAGE_KEY, settings.model_dump_json().encode("utf-8"))
        self._settings = settings
        return settings

    @property
    def settings(self) -> AppSettings:
        return self._settings

    @property
    def notifications(self) -> NotificationSettings:
        return self._settings.notifications

    # ---- appearance ----

    def update_appearance(
        self,
        *,
        theme: Optional[str] = None,
        accent_color: Optional[str] = None,
        font_size: Optional[int] = None,
    ) -> AppSettings:
        with self._mutation():
            data = self._settings.model_dump()
            if theme is not None:
                data["theme"] = theme
            if accent_color is not None:
                data["accent_color"] = accent_color
            if font_size is not None:
                data["font_size"] = font_size
            return self._commit(AppSettings.model_validate(data))

    # ---- reminders ----

    def _apply(self, transition: ReminderTransition) -> ReminderTransition:
        self._commit(self._settings.model_copy(update={"notifications": transition.current}))
        logger.info(
            f"Reminder {transition.state.value} at {transition.current.daily_reminder_time} "
            f"({len(transition.effects)} effects)"
        )
        return transition

    def enable_reminder(self, time: Optional[str] = None) -> ReminderTransition:
        with self._mutation():
            return self._apply(scheduler.enable(self.notifications, time))

    def disable_reminder(self) -> ReminderTransition:
        with self._mutation():
            return self._apply(scheduler.disable(self.notifications))

    def toggle_notifications(self, enabled: bool) -> ReminderTransition:
        if enabled:
            return self.enable_reminder()
        return self.disable_reminder()

    def set_daily_reminder_time(self, time: str) -> ReminderTransition:
        with self._mutation():
            return self._apply(scheduler.change_time(self.notifications, time))

    def reconcile(self) -> ReminderTransition:
        """Re-derive the trigger from stored settings without changing them (startup)."""
        current = self.notifications
        return scheduler.plan_reminder_transition(current, current)
