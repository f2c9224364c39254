"""Error taxonomy for habitloop.

Nothing raised here is fatal: callers are expected to catch these and fall back
to a well-defined state.
"""

from typing import Optional


class HabitLoopError(Exception):
    """Base class for all habitloop errors."""


class ValidationError(HabitLoopError, ValueError):
    """A routine or task payload violates a data model invariant."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class NotFoundError(HabitLoopError, LookupError):
    """An operation referenced a routine or task id absent from the store."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class ExternalSubsystemError(HabitLoopError):
    """The notification subsystem rejected a permission or scheduling call."""
