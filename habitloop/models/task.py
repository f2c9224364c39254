"""Task instance data model for habitloop."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

DAY_KEY_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def _check_calendar_day(value: str) -> str:
    """Reject well-shaped keys that name no real day, e.g. 2026-13-45."""
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValueError(f"{value!r} is not a calendar date")
    return value


class TaskInstance(BaseModel):
    """One concrete dated occurrence of a routine.

    `progress` is None for completion goals and a number >= 0 for counter and
    duration goals; use `habitloop.models.task_factory` to construct instances
    so the pairing with the owning routine's goal type holds.
    """

    id: str = Field(..., description="Task instance identifier")
    routine_id: str = Field(..., description="Owning routine id")
    date: str = Field(..., pattern=DAY_KEY_PATTERN, description="Calendar day key (YYYY-MM-DD)")
    completed: bool = Field(False, description="Whether the occurrence was checked off")
    progress: Optional[float] = Field(None, ge=0, description="Progress toward a counter/duration goal")

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_calendar_day(v)

    @property
    def key(self) -> tuple:
        """Natural key used for idempotent upserts."""
        return (self.routine_id, self.date)


class TaskCreate(BaseModel):
    """Payload for adding a task instance by hand."""

    routine_id: str
    date: str = Field(..., pattern=DAY_KEY_PATTERN)
    completed: bool = False
    progress: Optional[float] = Field(None, ge=0)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v):
        return _check_calendar_day(v)


class TaskUpdate(BaseModel):
    """Toggle completion and/or set progress."""

    completed: Optional[bool] = None
    progress: Optional[float] = Field(None, ge=0)
