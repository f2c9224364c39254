"""Reminder state machine.

Two states: ARMED (one recurring daily trigger registered at the configured
time of day) and DISARMED (nothing registered). Transitions are pure functions
of (previous settings, new settings) and return the effects the caller must
run against the notification subsystem after committing the new settings.

The notification subsystem has no "replace" primitive, so arming always cancels
everything first; at most one trigger can exist afterwards.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from habitloop.models.constants import REMINDER_BODY, REMINDER_TITLE
from habitloop.models.settings import NotificationSettings


class ReminderState(str, Enum):
    ARMED = "armed"
    DISARMED = "disarmed"


@dataclass(frozen=True)
class CancelAllReminders:
    """Cancel every scheduled notification, not only ours."""


@dataclass(frozen=True)
class ScheduleDailyReminder:
    hour: int
    minute: int
    title: str = REMINDER_TITLE
    body: str = REMINDER_BODY


ReminderEffect = Union[CancelAllReminders, ScheduleDailyReminder]


@dataclass(frozen=True)
class ReminderTransition:
    previous: NotificationSettings
    current: NotificationSettings
    effects: Tuple[ReminderEffect, ...]

    @property
    def state(self) -> ReminderState:
        return reminder_state(self.current)


def reminder_state(settings: NotificationSettings) -> ReminderState:
    return ReminderState.ARMED if settings.enabled else ReminderState.DISARMED


def plan_reminder_transition(
    previous: NotificationSettings, new: NotificationSettings
) -> ReminderTransition:
    """Derive the effects that bring the subsystem in line with `new`.

    - enabled: cancel all, then schedule one daily trigger at the new time
      (also when nothing changed, which re-arms a lost trigger)
    - disabled: cancel all
    """
    if new.enabled:
        hour, minute = new.hour_minute
        effects: Tuple[ReminderEffect, ...] = (
            CancelAllReminders(),
            ScheduleDailyReminder(hour=hour, minute=minute),
        )
    else:
        effects = (CancelAllReminders(),)
    return ReminderTransition(previous=previous, current=new, effects=effects)


def enable(current: NotificationSettings, time: Optional[str] = None) -> ReminderTransition:
    """Arm (or re-arm) the reminder, optionally at a new time of day."""
    new = NotificationSettings(
        enabled=True,
        daily_reminder_time=time if time is not None else current.daily_reminder_time,
    )
    return plan_reminder_transition(current, new)


def disable(current: NotificationSettings) -> ReminderTransition:
    new = NotificationSettings(enabled=False, daily_reminder_time=current.daily_reminder_time)
    return plan_reminder_transition(current, new)


def change_time(current: NotificationSettings, new_time: str) -> ReminderTransition:
    """Move the reminder; re-arms only if currently armed."""
    if current.enabled:
        return enable(current, new_time)
    new = NotificationSettings(enabled=False, daily_reminder_time=new_time)
    # Disarmed stays disarmed: persist the time, register nothing.
    return ReminderTransition(previous=current, current=new, effects=())
