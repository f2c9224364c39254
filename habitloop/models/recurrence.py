"""Recurrence rules for routines.

A rule is a tagged variant: either `daily` (no payload) or `specific-days`
with a set of weekday integers, Sunday=0 ... Saturday=6.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, Field, field_validator


class RecurrenceType(str, Enum):
    DAILY = "daily"
    SPECIFIC_DAYS = "specific-days"


class DailyRecurrence(BaseModel):
    """Occurs every day."""

    type: Literal["daily"] = RecurrenceType.DAILY.value


class SpecificDaysRecurrence(BaseModel):
    """Occurs on the listed weekdays only.

    Notes:
    - An empty day list is representable (the materializer yields nothing for it);
      the routine store rejects it when a routine is created or edited.
    - Out-of-range values are kept as given and reported by routine validation.
    """

    type: Literal["specific-days"] = RecurrenceType.SPECIFIC_DAYS.value
    days: List[int] = Field(default_factory=list, description="Weekdays, Sunday=0 ... Saturday=6")

    @field_validator("days")
    @classmethod
    def _normalize_days(cls, v):
        # Set semantics, stable ascending order for storage
        return sorted(set(v))


Recurrence = Annotated[
    Union[DailyRecurrence, SpecificDaysRecurrence],
    Field(discriminator="type"),
]
