"""Materialize a routine's recurrence rule into concrete task instances."""

from __future__ import annotations

from typing import Iterable, List

from habitloop.models.constants import HORIZON_DAYS
from habitloop.models.recurrence import Recurrence, RecurrenceType
from habitloop.models.routine import Routine
from habitloop.models.task import TaskInstance
from habitloop.models.task_factory import create_task_instance
from habitloop.recurrence.calendar import Instant, add_days, date_key, weekday_of


def occurs_on_day(rule: Recurrence, day: Instant) -> bool:
    if rule.type == RecurrenceType.DAILY.value:
        return True
    if rule.type == RecurrenceType.SPECIFIC_DAYS.value:
        return weekday_of(day) in (rule.days or [])
    return False


def horizon_days(anchor: Instant, horizon: int = HORIZON_DAYS) -> Iterable[Instant]:
    """Yield anchor, anchor+1, ... for `horizon` whole days."""
    for i in range(horizon):
        yield add_days(anchor, i)


def materialize(routine: Routine, anchor: Instant, horizon: int = HORIZON_DAYS) -> List[TaskInstance]:
    """Expand a routine into task instances over [anchor, anchor + horizon days).

    The result is in ascending date order. Instances are not stored here; the
    routine store upserts them by (routine_id, date) so repeated calls over an
    overlapping window never duplicate an occurrence.

    A specific-days rule with no days yields an empty list.
    """
    out: List[TaskInstance] = []
    for day in horizon_days(anchor, horizon):
        if not occurs_on_day(routine.frequency, day):
            continue
        out.append(create_task_instance(routine.id, date_key(day), routine.goal_type))
    return out
