"""Daily reminder: pure transitions, notification backends, effect runner."""

from habitloop.reminders.scheduler import (
    CancelAllReminders,
    ReminderState,
    ReminderTransition,
    ScheduleDailyReminder,
    plan_reminder_transition,
)
from habitloop.reminders.backends import (
    LocalNotificationBackend,
    NullNotificationBackend,
    build_backend,
)
from habitloop.reminders.runner import ReminderEffectRunner

__all__ = [
    "CancelAllReminders",
    "ReminderState",
    "ReminderTransition",
    "ScheduleDailyReminder",
    "plan_reminder_transition",
    "LocalNotificationBackend",
    "NullNotificationBackend",
    "build_backend",
    "ReminderEffectRunner",
]
