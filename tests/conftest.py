"""Pytest fixtures and configuration for habitloop tests."""

import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from habitloop.database.database import Base, get_db
from habitloop.database import models  # noqa: F401  (registers tables)
from habitloop.database.kv_store import SqlKeyValueStore
from habitloop.reminders.backends import LocalNotificationBackend
from habitloop.reminders.runner import ReminderEffectRunner
from habitloop.store.routine_store import RoutineStore
from habitloop.store.settings_store import SettingsStore


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# 2026-10-18 is a Sunday
ANCHOR_SUNDAY = datetime(2026, 10, 18, 9, 30)


class FakeClock:
    """Settable clock passed to stores in place of datetime.now."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, **kwargs) -> None:
        self.now = self.now + timedelta(days=days, **kwargs)


@pytest.fixture(scope="function")
def db_session():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def kv_store(db_session: Session):
    return SqlKeyValueStore(db_session)


@pytest.fixture
def clock():
    return FakeClock(ANCHOR_SUNDAY)


@pytest.fixture
def routine_store(kv_store, clock):
    return RoutineStore(kv_store, clock=clock)


@pytest.fixture
def settings_store(kv_store):
    return SettingsStore(kv_store)


@pytest.fixture
def backend():
    """Local backend without its tick thread; triggers are inspected directly."""
    return LocalNotificationBackend()


@pytest.fixture
def runner(backend):
    return ReminderEffectRunner(backend)


@pytest.fixture
def daily_payload():
    return {
        "name": "Drink water",
        "icon": "💧",
        "color": "#60A5FA",
        "frequency": {"type": "daily"},
        "goal_type": "completion",
    }


@pytest.fixture
def test_client(db_session: Session, runner):
    """FastAPI test client with overridden database and reminder runner dependencies.

    The client is not entered as a context manager, so the app lifespan (which
    touches the configured database and starts the tick thread) does not run.
    """
    from habitloop.api.app import app, get_reminder_runner

    def override_get_db():
        try:
            yield db_session
        finally:
            pass  # Don't close the session here, let the fixture handle it

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_reminder_runner] = lambda: runner

    yield TestClient(app)

    app.dependency_overrides.clear()
