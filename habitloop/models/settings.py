"""Settings data model for habitloop."""

import re
from typing import Tuple

from pydantic import BaseModel, Field, field_validator

from habitloop.models.constants import (
    DEFAULT_ACCENT_COLOR,
    DEFAULT_FONT_SIZE,
    DEFAULT_NOTIFICATIONS_ENABLED,
    DEFAULT_REMINDER_TIME,
    DEFAULT_THEME,
)

_TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_reminder_time(value: str) -> Tuple[int, int]:
    """Split a validated "HH:MM" string into (hour, minute).

    The value is produced by a constrained time picker, so a malformed string is
    a caller bug rather than user input to recover from.
    """
    hours, minutes = value.split(":")
    return int(hours), int(minutes)


class NotificationSettings(BaseModel):
    """Daily reminder preferences."""

    enabled: bool = Field(DEFAULT_NOTIFICATIONS_ENABLED, description="Whether the daily reminder is on")
    daily_reminder_time: str = Field(DEFAULT_REMINDER_TIME, description="Local time of day, HH:MM")

    @field_validator("daily_reminder_time")
    @classmethod
    def _validate_time(cls, v: str) -> str:
        if not _TIME_RE.match(v or ""):
            raise ValueError("daily_reminder_time must be HH:MM with HH in 00..23 and MM in 00..59")
        return v

    @property
    def hour_minute(self) -> Tuple[int, int]:
        return parse_reminder_time(self.daily_reminder_time)


class AppSettings(BaseModel):
    """User-facing app settings persisted under the settings storage key."""

    theme: str = Field(DEFAULT_THEME, description="Theme name")
    accent_color: str = Field(DEFAULT_ACCENT_COLOR, description="Accent color token")
    font_size: int = Field(DEFAULT_FONT_SIZE, ge=8, le=48, description="Base font size")
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
