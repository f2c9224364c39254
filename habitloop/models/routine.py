"""Routine data model for habitloop."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from habitloop.errors import ValidationError
from habitloop.models.constants import DEFAULT_COLOR, DEFAULT_ICON
from habitloop.models.recurrence import DailyRecurrence, Recurrence, RecurrenceType


class GoalType(str, Enum):
    """How progress on a routine is measured."""
    COMPLETION = "completion"
    COUNTER = "counter"
    DURATION = "duration"


def tracks_progress(goal_type) -> bool:
    """Counter and duration goals carry a numeric progress value; completion goals do not."""
    return GoalType(goal_type) != GoalType.COMPLETION


class RoutineCreate(BaseModel):
    """Payload for creating a routine."""

    name: str = Field(..., description="Display name")
    icon: str = Field(DEFAULT_ICON, description="Glyph token")
    color: str = Field(DEFAULT_COLOR, description="RGB color token")
    frequency: Recurrence = Field(default_factory=DailyRecurrence)
    goal_type: GoalType = Field(GoalType.COMPLETION, description="Goal type")
    goal_value: Optional[int] = Field(None, description="Target amount (counter/duration goals)")
    goal_unit: Optional[str] = Field(None, description="Unit label (counter/duration goals)")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class RoutinePatch(BaseModel):
    """Partial update for a routine; only fields explicitly set are applied."""

    name: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    frequency: Optional[Recurrence] = None
    goal_type: Optional[GoalType] = None
    goal_value: Optional[int] = None
    goal_unit: Optional[str] = None

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


class Routine(BaseModel):
    """Canonical Routine model."""

    id: str = Field(..., description="Stable routine identifier")
    name: str = Field(..., description="Display name")
    icon: str = Field(DEFAULT_ICON, description="Glyph token")
    color: str = Field(DEFAULT_COLOR, description="RGB color token")
    frequency: Recurrence = Field(default_factory=DailyRecurrence)
    goal_type: GoalType = Field(GoalType.COMPLETION, description="Goal type")
    goal_value: Optional[int] = Field(None, description="Present iff goal_type is not completion")
    goal_unit: Optional[str] = Field(None, description="Present iff goal_type is not completion")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        """Pydantic configuration."""
        use_enum_values = True


def normalize_routine_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Strip whitespace and drop goal fields that a completion goal must not carry."""
    out = dict(fields)
    if isinstance(out.get("name"), str):
        out["name"] = out["name"].strip()
    if isinstance(out.get("goal_unit"), str):
        out["goal_unit"] = out["goal_unit"].strip()
    goal_type = out.get("goal_type")
    if goal_type is not None and not tracks_progress(goal_type):
        out["goal_value"] = None
        out["goal_unit"] = None
    return out


def validate_routine_fields(fields: Dict[str, Any]) -> None:
    """Enforce routine invariants.

    Raises:
        ValidationError: on an empty name, a missing frequency or goal type, an empty
            or out-of-range day set, or a counter/duration goal without both a positive value and a unit.
    """
    name = fields.get("name")
    if not name or not str(name).strip():
        raise ValidationError("Routine name must not be empty", field="name")

    frequency = fields.get("frequency")
    if frequency is None:
        raise ValidationError("Routine frequency is required", field="frequency")
    if frequency.type == RecurrenceType.SPECIFIC_DAYS.value:
        if not frequency.days:
            raise ValidationError("Select at least one day for a specific-days routine", field="frequency")
        bad = [d for d in frequency.days if d < 0 or d > 6]
        if bad:
            raise ValidationError(f"Weekdays must be in 0..6, got {bad}", field="frequency")

    goal_type = fields.get("goal_type")
    if goal_type is None:
        raise ValidationError("Routine goal type is required", field="goal_type")
    if tracks_progress(goal_type):
        goal_value = fields.get("goal_value")
        goal_unit = fields.get("goal_unit")
        if goal_value is None or goal_value <= 0:
            raise ValidationError(f"A {GoalType(goal_type).value} goal needs a positive goal_value", field="goal_value")
        if not goal_unit or not str(goal_unit).strip():
            raise ValidationError(f"A {GoalType(goal_type).value} goal needs a goal_unit", field="goal_unit")
