"""Task instance creation factory for habitloop.

Centralizes construction so that `progress` is present exactly when the owning
routine's goal type tracks progress.
"""

import uuid
from typing import Optional

from habitloop.errors import ValidationError
from habitloop.models.routine import tracks_progress
from habitloop.models.task import TaskInstance


def create_task_instance(
    routine_id: str,
    date_key: str,
    goal_type,
    completed: bool = False,
    progress: Optional[float] = None,
    task_id: Optional[str] = None,
) -> TaskInstance:
    """Create a task instance whose progress field matches the goal type.

    Args:
        routine_id: Owning routine id
        date_key: Calendar day key (YYYY-MM-DD)
        goal_type: Owning routine's goal type
        completed: Initial completion flag
        progress: Initial progress; defaults to 0 for progress-tracking goals
        task_id: Explicit id (a fresh UUID v4 when None)

    Returns:
        TaskInstance

    Raises:
        ValidationError: if progress is given for a completion goal
    """
    if tracks_progress(goal_type):
        progress = 0 if progress is None else progress
    elif progress is not None:
        raise ValidationError("Completion goals do not track progress", field="progress")

    return TaskInstance(
        id=task_id or str(uuid.uuid4()),
        routine_id=routine_id,
        date=date_key,
        completed=completed,
        progress=progress,
    )


def coerce_progress(task: TaskInstance, goal_type) -> TaskInstance:
    """Return a copy of task whose progress presence matches goal_type."""
    if tracks_progress(goal_type):
        if task.progress is None:
            return task.model_copy(update={"progress": 0})
        return task
    if task.progress is not None:
        return task.model_copy(update={"progress": None})
    return task
