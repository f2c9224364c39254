"""Recurrence expansion for habitloop."""

from habitloop.recurrence.calendar import add_days, date_key, weekday_of
from habitloop.recurrence.materialize import materialize, occurs_on_day

__all__ = [
    "add_days",
    "date_key",
    "weekday_of",
    "materialize",
    "occurs_on_day",
]
