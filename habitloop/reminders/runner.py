"""Executes reminder effects against a notification backend.

Failures are logged and swallowed: the committed settings stay the source of
truth, and the next transition (or startup reconcile) re-arms.
"""

import logging
import threading
from typing import Iterable

from habitloop.reminders.backends import NotificationBackend
from habitloop.reminders.scheduler import (
    CancelAllReminders,
    ReminderEffect,
    ReminderState,
    ScheduleDailyReminder,
)

logger = logging.getLogger(__name__)


class ReminderEffectRunner:
    def __init__(self, backend: NotificationBackend):
        self.backend = backend
        # Effect lists run one at a time
        self._lock = threading.Lock()

    def request_permission(self) -> bool:
        try:
            return bool(self.backend.request_permission())
        except Exception as e:
            logger.error(f"Notification permission request failed: {type(e).__name__}: {str(e)}")
            return False

    def run(self, effects: Iterable[ReminderEffect]) -> ReminderState:
        """Run effects in order; returns the state the subsystem effectively ends in."""
        effects = tuple(effects)
        with self._lock:
            state = self._run(effects)
        logger.info(f"Reminder effects applied; effective state {state.value}")
        return state

    def _run(self, effects) -> ReminderState:
        if not getattr(self.backend, "supported", False):
            logger.debug(f"No notification subsystem; skipping {len(effects)} reminder effects")
            return ReminderState.DISARMED

        state = ReminderState.DISARMED
        for effect in effects:
            if isinstance(effect, CancelAllReminders):
                try:
                    self.backend.cancel_all()
                    logger.info("Daily reminders cancelled")
                    state = ReminderState.DISARMED
                except Exception as e:
                    # A stale trigger may survive; registering another could leave two.
                    logger.error(f"Error cancelling notifications: {type(e).__name__}: {str(e)}")
                    return ReminderState.DISARMED
            elif isinstance(effect, ScheduleDailyReminder):
                if not self.request_permission():
                    logger.warning("Notification permission denied; daily reminder stays disarmed")
                    return ReminderState.DISARMED
                try:
                    self.backend.schedule_recurring(effect.hour, effect.minute, effect.title, effect.body)
                    logger.info(f"Daily reminder scheduled for {effect.hour:02d}:{effect.minute:02d}")
                    state = ReminderState.ARMED
                except Exception as e:
                    logger.error(f"Error scheduling notification: {type(e).__name__}: {str(e)}")
                    return ReminderState.DISARMED
        return state
