"""Data models for habitloop."""

from habitloop.models.recurrence import (
    DailyRecurrence,
    Recurrence,
    RecurrenceType,
    SpecificDaysRecurrence,
)
from habitloop.models.routine import GoalType, Routine, RoutineCreate, RoutinePatch
from habitloop.models.settings import AppSettings, NotificationSettings
from habitloop.models.task import TaskCreate, TaskInstance, TaskUpdate

__all__ = [
    "DailyRecurrence",
    "Recurrence",
    "RecurrenceType",
    "SpecificDaysRecurrence",
    "GoalType",
    "Routine",
    "RoutineCreate",
    "RoutinePatch",
    "AppSettings",
    "NotificationSettings",
    "TaskCreate",
    "TaskInstance",
    "TaskUpdate",
]
