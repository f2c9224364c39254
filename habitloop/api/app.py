"""FastAPI web application for habitloop."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from habitloop.config import load_config
from habitloop.database.database import SessionLocal, get_db, init_db
from habitloop.database.kv_store import KeyValueStore, SqlKeyValueStore
from habitloop.errors import NotFoundError, ValidationError
from habitloop.logging_setup import setup_logging
from habitloop.models.routine import Routine, RoutineCreate, RoutinePatch
from habitloop.models.settings import AppSettings, NotificationSettings
from habitloop.models.task import TaskCreate, TaskInstance, TaskUpdate
from habitloop.recurrence.calendar import date_key
from habitloop.reminders.backends import build_backend
from habitloop.reminders.runner import ReminderEffectRunner
from habitloop.reminders.scheduler import ReminderTransition
from habitloop.store.routine_store import RoutineStore
from habitloop.store.settings_store import SettingsStore

logger = logging.getLogger(__name__)

config = load_config()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(config.log_level)
    init_db()
    backend = build_backend(config.platform)
    if hasattr(backend, "start"):
        backend.start()
    app.state.reminder_runner = ReminderEffectRunner(backend)

    # In-process triggers don't survive a restart; re-arm from stored settings.
    db = SessionLocal()
    try:
        transition = SettingsStore(SqlKeyValueStore(db)).reconcile()
        app.state.reminder_runner.run(transition.effects)
    finally:
        db.close()

    yield

    if hasattr(backend, "stop"):
        backend.stop()


app = FastAPI(
    title="habitloop API",
    description="Recurring routines, materialized daily tasks, and a single daily reminder",
    version="0.1.0",
    lifespan=lifespan,
)


# Dependencies
def get_kv_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return SqlKeyValueStore(db)


def get_routine_store(kv: KeyValueStore = Depends(get_kv_store)) -> RoutineStore:
    return RoutineStore(kv, rematerialize_policy=config.rematerialize_policy)


def get_settings_store(kv: KeyValueStore = Depends(get_kv_store)) -> SettingsStore:
    return SettingsStore(kv)


def get_reminder_runner(request: Request) -> ReminderEffectRunner:
    return request.app.state.reminder_runner


# Error mapping
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "field": exc.field})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# Response models
class RoutineResponse(BaseModel):
    routine: Routine
    tasks_created: Optional[int] = None


class RoutineListResponse(BaseModel):
    routines: List[Routine]
    count: int


class DeleteResponse(BaseModel):
    deleted: bool
    tasks_removed: int


class TaskResponse(BaseModel):
    task: TaskInstance


class TaskListResponse(BaseModel):
    tasks: List[TaskInstance]
    count: int


class HorizonResponse(BaseModel):
    tasks_created: int


class AppearanceUpdate(BaseModel):
    theme: Optional[str] = None
    accent_color: Optional[str] = None
    font_size: Optional[int] = Field(None, ge=8, le=48)


class EnableReminderRequest(BaseModel):
    daily_reminder_time: Optional[str] = Field(None, pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class ReminderTimeRequest(BaseModel):
    daily_reminder_time: str = Field(..., pattern=r"^([01]\d|2[0-3]):[0-5]\d$")


class ReminderResponse(BaseModel):
    notifications: NotificationSettings
    state: str = Field(
        ...,
        description="Logical reminder state (armed/disarmed) from the committed settings; "
        "the subsystem may still end disarmed, e.g. when permission is denied",
    )


class PermissionResponse(BaseModel):
    granted: bool


def _reminder_response(
    transition: ReminderTransition,
    background_tasks: BackgroundTasks,
    runner: ReminderEffectRunner,
) -> ReminderResponse:
    # Settings are already committed; subsystem calls run after the response.
    background_tasks.add_task(runner.run, transition.effects)
    return ReminderResponse(notifications=transition.current, state=transition.state.value)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


# Routines
@app.get("/routines", response_model=RoutineListResponse)
def list_routines(store: RoutineStore = Depends(get_routine_store)):
    routines = store.list_routines()
    return RoutineListResponse(routines=routines, count=len(routines))


@app.post("/routines", response_model=RoutineResponse, status_code=201)
def create_routine(spec: RoutineCreate, store: RoutineStore = Depends(get_routine_store)):
    """Create a routine and materialize its task instances for the horizon."""
    routine = store.add_routine(spec)
    return RoutineResponse(routine=routine, tasks_created=len(store.tasks_for_routine(routine.id)))


@app.get("/routines/{routine_id}", response_model=RoutineResponse)
def get_routine(routine_id: str, store: RoutineStore = Depends(get_routine_store)):
    return RoutineResponse(routine=store.require_routine(routine_id))


@app.patch("/routines/{routine_id}", response_model=RoutineResponse)
def update_routine(routine_id: str, patch: RoutinePatch, store: RoutineStore = Depends(get_routine_store)):
    return RoutineResponse(routine=store.update_routine(routine_id, patch))


@app.delete("/routines/{routine_id}", response_model=DeleteResponse)
def delete_routine(routine_id: str, store: RoutineStore = Depends(get_routine_store)):
    removed = store.delete_routine(routine_id)
    return DeleteResponse(deleted=True, tasks_removed=removed)


@app.get("/routines/{routine_id}/tasks", response_model=TaskListResponse)
def list_routine_tasks(routine_id: str, store: RoutineStore = Depends(get_routine_store)):
    store.require_routine(routine_id)
    tasks = store.tasks_for_routine(routine_id)
    return TaskListResponse(tasks=tasks, count=len(tasks))


# Tasks
@app.get("/tasks", response_model=TaskListResponse)
def list_tasks(
    date: Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
    store: RoutineStore = Depends(get_routine_store),
):
    """Task instances for one day (today when no date is given)."""
    tasks = store.tasks_for_date(date or date_key(datetime.now()))
    return TaskListResponse(tasks=tasks, count=len(tasks))


@app.post("/tasks", response_model=TaskResponse, status_code=201)
def add_task(spec: TaskCreate, store: RoutineStore = Depends(get_routine_store)):
    return TaskResponse(task=store.add_task(spec))


@app.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_task(task_id: str, change: TaskUpdate, store: RoutineStore = Depends(get_routine_store)):
    return TaskResponse(task=store.update_task(task_id, change))


@app.post("/tasks/{task_id}/toggle", response_model=TaskResponse)
def toggle_task(task_id: str, store: RoutineStore = Depends(get_routine_store)):
    return TaskResponse(task=store.toggle_task(task_id))


@app.post("/horizon/refresh", response_model=HorizonResponse)
def refresh_horizon(store: RoutineStore = Depends(get_routine_store)):
    """Extend every routine's task window to cover the horizon from today."""
    return HorizonResponse(tasks_created=store.refresh_horizon())


# Settings
@app.get("/settings", response_model=AppSettings)
def get_settings(store: SettingsStore = Depends(get_settings_store)):
    return store.settings


@app.patch("/settings", response_model=AppSettings)
def update_appearance(change: AppearanceUpdate, store: SettingsStore = Depends(get_settings_store)):
    return store.update_appearance(
        theme=change.theme,
        accent_color=change.accent_color,
        font_size=change.font_size,
    )


@app.post("/settings/notifications/enable", response_model=ReminderResponse)
def enable_reminder(
    background_tasks: BackgroundTasks,
    body: Optional[EnableReminderRequest] = None,
    store: SettingsStore = Depends(get_settings_store),
    runner: ReminderEffectRunner = Depends(get_reminder_runner),
):
    time = body.daily_reminder_time if body else None
    return _reminder_response(store.enable_reminder(time), background_tasks, runner)


@app.post("/settings/notifications/disable", response_model=ReminderResponse)
def disable_reminder(
    background_tasks: BackgroundTasks,
    store: SettingsStore = Depends(get_settings_store),
    runner: ReminderEffectRunner = Depends(get_reminder_runner),
):
    return _reminder_response(store.disable_reminder(), background_tasks, runner)


@app.put("/settings/notifications/time", response_model=ReminderResponse)
def set_reminder_time(
    body: ReminderTimeRequest,
    background_tasks: BackgroundTasks,
    store: SettingsStore = Depends(get_settings_store),
    runner: ReminderEffectRunner = Depends(get_reminder_runner),
):
    return _reminder_response(store.set_daily_reminder_time(body.daily_reminder_time), background_tasks, runner)


@app.post("/settings/notifications/permission", response_model=PermissionResponse)
def request_permission(runner: ReminderEffectRunner = Depends(get_reminder_runner)):
    return PermissionResponse(granted=runner.request_permission())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
