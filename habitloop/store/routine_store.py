"""Routine store: routines, their task instances, and materialization on create.

Routines and tasks are kept as one JSON aggregate under a single durable key.
Every mutation reloads the durable state under a process-wide lock, validates,
applies in memory, then persists; a failed persist reloads the last durable
state before re-raising.
"""

import json
import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from habitloop.config import RematerializePolicy
from habitloop.database.kv_store import KeyValueStore
from habitloop.errors import NotFoundError, ValidationError
from habitloop.models.constants import ROUTINE_BACKUP_KEY, ROUTINE_STORAGE_KEY
from habitloop.models.routine import (
    Routine,
    RoutineCreate,
    RoutinePatch,
    normalize_routine_fields,
    tracks_progress,
    validate_routine_fields,
)
from habitloop.models.task import TaskCreate, TaskInstance, TaskUpdate
from habitloop.models.task_factory import coerce_progress, create_task_instance
from habitloop.recurrence.calendar import date_key, parse_date_key
from habitloop.recurrence.materialize import materialize, occurs_on_day

logger = logging.getLogger(__name__)

_ROUTINE_FIELDS = ("name", "icon", "color", "frequency", "goal_type", "goal_value", "goal_unit")
# Fields a patch may not clear
_REQUIRED_FIELDS = ("name", "icon", "color", "frequency", "goal_type")

# Held across load, mutate and save so concurrent requests never interleave
_MUTATION_LOCK = threading.RLock()


class RoutineAggregate(BaseModel):
    """Persisted shape of the routine storage key."""

    routines: List[Routine] = Field(default_factory=list)
    tasks: List[TaskInstance] = Field(default_factory=list)


class RoutineStore:
    """Owns routine-id -> Routine and task-id -> TaskInstance."""

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        rematerialize_policy: RematerializePolicy = RematerializePolicy.NONE,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.kv = kv
        self.rematerialize_policy = RematerializePolicy(rematerialize_policy)
        self._clock = clock
        self._routines: Dict[str, Routine] = {}
        self._tasks: Dict[str, TaskInstance] = {}
        self._task_index: Dict[Tuple[str, str], str] = {}
        self._load()

    # ---- persistence ----

    def _load(self) -> None:
        self._routines = {}
        self._tasks = {}
        self._task_index = {}
        raw = self.kv.get(ROUTINE_STORAGE_KEY)
        if not raw:
            return
        try:
            data = json.loads(raw)
        except ValueError as e:
            self._keep_unreadable(raw, f"{type(e).__name__}: {str(e)[:200]}")
            return
        if not isinstance(data, dict):
            self._keep_unreadable(raw, f"expected an object, got {type(data).__name__}")
            return

        # A bad record is skipped on its own; the rest of the aggregate still loads
        dropped = 0
        for item in data.get("routines") or []:
            try:
                routine = Routine.model_validate(item)
            except PydanticValidationError as e:
                logger.error(f"Skipping unreadable routine record: {str(e)[:200]}")
                dropped += 1
                continue
            self._routines[routine.id] = routine
        for item in data.get("tasks") or []:
            try:
                task = TaskInstance.model_validate(item)
            except PydanticValidationError as e:
                logger.error(f"Skipping unreadable task record: {str(e)[:200]}")
                dropped += 1
                continue
            if task.routine_id not in self._routines:
                # Orphan left behind by an interrupted cascade
                continue
            self._put_task(task)
        if dropped:
            self._keep_unreadable(raw, f"{dropped} unreadable records")

    def _keep_unreadable(self, raw: bytes, reason: str) -> None:
        """Copy the stored bytes aside before the next save overwrites them."""
        logger.error(f"Routine storage partly unreadable ({reason}); raw copy kept under {ROUTINE_BACKUP_KEY}")
        self.kv.set(ROUTINE_BACKUP_KEY, bytes(raw))

    @contextmanager
    def _mutation(self):
        with _MUTATION_LOCK:
            self._load()
            yield

    def _save(self) -> None:
        aggregate = RoutineAggregate(
            routines=list(self._routines.values()),
            tasks=list(self._tasks.values()),
        )
        payload = aggregate.model_dump_json(exclude_none=True).encode("utf-8")
        try:
            self.kv.set(ROUTINE_STORAGE_KEY, payload)
        except Exception:
            self._load()
            raise

    def _put_task(self, task: TaskInstance) -> None:
        self._tasks[task.id] = task
        self._task_index[task.key] = task.id

    def _drop_task(self, task_id: str) -> None:
        task = self._tasks.pop(task_id, None)
        if task is not None:
            self._task_index.pop(task.key, None)

    def _now(self) -> datetime:
        return self._clock()

    # ---- queries ----

    def list_routines(self) -> List[Routine]:
        """All routines, oldest first."""
        return sorted(self._routines.values(), key=lambda r: r.created_at)

    def get_routine(self, routine_id: str) -> Optional[Routine]:
        return self._routines.get(routine_id)

    def require_routine(self, routine_id: str) -> Routine:
        routine = self._routines.get(routine_id)
        if routine is None:
            raise NotFoundError("Routine", routine_id)
        return routine

    def get_task(self, task_id: str) -> Optional[TaskInstance]:
        return self._tasks.get(task_id)

    def find_task(self, routine_id: str, day_key: str) -> Optional[TaskInstance]:
        task_id = self._task_index.get((routine_id, day_key))
        return self._tasks.get(task_id) if task_id else None

    def list_tasks(self) -> List[TaskInstance]:
        return sorted(self._tasks.values(), key=lambda t: (t.date, t.routine_id))

    def tasks_for_date(self, day_key: str) -> List[TaskInstance]:
        return [t for t in self.list_tasks() if t.date == day_key]

    def tasks_for_routine(self, routine_id: str) -> List[TaskInstance]:
        """Task instances of one routine in ascending date order."""
        return sorted(
            (t for t in self._tasks.values() if t.routine_id == routine_id),
            key=lambda t: t.date,
        )

    # ---- materialization ----

    def _upsert_materialized(self, routine: Routine, anchor: datetime) -> int:
        """Insert materialized instances whose (routine_id, date) is not yet stored.

        Existing instances are kept as they are, so completion and progress survive
        repeated expansion over an overlapping window.
        """
        created = 0
        for task in materialize(routine, anchor):
            if task.key in self._task_index:
                continue
            self._put_task(task)
            created += 1
        return created

    def refresh_horizon(self, anchor: Optional[datetime] = None) -> int:
        """Extend every routine's window so it covers the horizon from anchor.

        Returns number of task instances created.
        """
        anchor = anchor or self._now()
        created = 0
        with self._mutation():
            for routine in self.list_routines():
                created += self._upsert_materialized(routine, anchor)
            if created:
                self._save()
        logger.info(f"Horizon refresh from {date_key(anchor)} created {created} task instances")
        return created

    def _replace_future(self, routine: Routine, now: datetime) -> Tuple[int, int]:
        """Drop untouched future instances the new rule no longer produces, then re-expand."""
        today = date_key(now)
        removed = 0
        for task in self.tasks_for_routine(routine.id):
            if task.date < today:
                continue
            untouched = not task.completed and not task.progress
            if untouched and not occurs_on_day(routine.frequency, parse_date_key(task.date)):
                self._drop_task(task.id)
                removed += 1
        created = self._upsert_materialized(routine, now)
        return removed, created

    # ---- routine mutations ----

    def add_routine(self, spec: RoutineCreate) -> Routine:
        """Validate, store, and materialize the horizon for a new routine.

        Raises:
            ValidationError: if the spec violates a routine invariant; nothing is stored.
        """
        fields = normalize_routine_fields({k: getattr(spec, k) for k in _ROUTINE_FIELDS})
        validate_routine_fields(fields)

        with self._mutation():
            now = self._now()
            routine = Routine(id=str(uuid.uuid4()), created_at=now, updated_at=now, **fields)
            self._routines[routine.id] = routine
            created = self._upsert_materialized(routine, now)
            self._save()
        logger.debug(f"Created routine {routine.id}: {routine.name[:50]} ({created} task instances)")
        return routine

    def update_routine(self, routine_id: str, patch: RoutinePatch) -> Routine:
        """Merge patch fields into a routine and re-validate.

        Future instances are re-expanded only under the replace_future policy.
        Progress presence on existing instances always follows the goal type.

        Raises:
            NotFoundError: unknown routine id
            ValidationError: a required field is cleared or the merged routine
                violates an invariant; nothing changes.
        """
        for name in _REQUIRED_FIELDS:
            if name in patch.model_fields_set and getattr(patch, name) is None:
                raise ValidationError(f"Routine {name} cannot be cleared", field=name)

        with self._mutation():
            current = self.require_routine(routine_id)
            merged = {k: getattr(current, k) for k in _ROUTINE_FIELDS}
            for name in patch.model_fields_set:
                merged[name] = getattr(patch, name)
            merged = normalize_routine_fields(merged)
            validate_routine_fields(merged)

            now = self._now()
            updated = _merged_routine(current, merged, now)
            self._routines[routine_id] = updated

            if updated.goal_type != current.goal_type:
                for task in self.tasks_for_routine(routine_id):
                    self._put_task(coerce_progress(task, updated.goal_type))

            schedule_changed = updated.frequency != current.frequency or updated.goal_type != current.goal_type
            if schedule_changed and self.rematerialize_policy == RematerializePolicy.REPLACE_FUTURE:
                removed, created = self._replace_future(updated, now)
                logger.debug(f"Re-expanded routine {routine_id}: removed {removed}, created {created}")

            self._save()
        logger.debug(f"Updated routine {routine_id}: {updated.name[:50]}")
        return updated

    def delete_routine(self, routine_id: str) -> int:
        """Remove a routine and all of its task instances.

        Returns number of task instances removed.

        Raises:
            NotFoundError: unknown routine id
        """
        with self._mutation():
            self.require_routine(routine_id)
            owned = [t.id for t in self._tasks.values() if t.routine_id == routine_id]
            for task_id in owned:
                self._drop_task(task_id)
            del self._routines[routine_id]
            self._save()
        logger.debug(f"Deleted routine {routine_id} and {len(owned)} task instances")
        return len(owned)

    # ---- task mutations ----

    def add_task(self, spec: TaskCreate) -> TaskInstance:
        """Upsert a task instance for (routine_id, date).

        Raises:
            NotFoundError: owning routine does not exist
            ValidationError: progress given for a completion goal
        """
        with self._mutation():
            routine = self.require_routine(spec.routine_id)
            existing = self.find_task(spec.routine_id, spec.date)
            task = create_task_instance(
                routine.id,
                spec.date,
                routine.goal_type,
                completed=spec.completed,
                progress=spec.progress,
                task_id=existing.id if existing else None,
            )
            self._put_task(task)
            self._save()
        return task

    def update_task(self, task_id: str, change: TaskUpdate) -> TaskInstance:
        """Toggle completion and/or set progress on a task instance.

        Raises:
            NotFoundError: unknown task id or missing owning routine
            ValidationError: progress set on a completion-goal task
        """
        with self._mutation():
            task = self._tasks.get(task_id)
            if task is None:
                raise NotFoundError("Task", task_id)
            routine = self.require_routine(task.routine_id)

            updates = {}
            if change.completed is not None:
                updates["completed"] = change.completed
            if change.progress is not None:
                if not tracks_progress(routine.goal_type):
                    raise ValidationError("Completion goals do not track progress", field="progress")
                updates["progress"] = change.progress
            if not updates:
                return task

            updated = task.model_copy(update=updates)
            self._put_task(updated)
            self._save()
        logger.debug(f"Updated task {task_id}: {updates}")
        return updated

    def toggle_task(self, task_id: str) -> TaskInstance:
        with self._mutation():
            task = self._tasks.get(task_id)
            if task is None:
                raise NotFoundError("Task", task_id)
            return self.update_task(task_id, TaskUpdate(completed=not task.completed))


def _merged_routine(current: Routine, merged: dict, now: datetime) -> Routine:
    """Re-validate a patched routine as a whole instead of copying fields over."""
    data = current.model_dump()
    for name, value in merged.items():
        data[name] = value.model_dump() if isinstance(value, BaseModel) else value
    data["updated_at"] = now
    try:
        return Routine.model_validate(data)
    except PydanticValidationError as e:
        first = e.errors()[0]
        field = str(first["loc"][0]) if first.get("loc") else None
        raise ValidationError(f"Invalid routine: {first['msg']}", field=field) from e
