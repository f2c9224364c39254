"""Stateful stores backed by the key-value durable store."""

from habitloop.store.routine_store import RoutineStore
from habitloop.store.settings_store import SettingsStore

__all__ = ["RoutineStore", "SettingsStore"]
