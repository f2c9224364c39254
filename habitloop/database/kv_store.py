"""Key-value durable store adapters.

The routine and settings stores only need `get(key)` and `set(key, value)` over
bytes; this module provides a SQLAlchemy-backed implementation and an
in-memory one.
"""

import logging
from datetime import datetime
from typing import Dict, Optional, Protocol

from sqlalchemy.orm import Session

from habitloop.database.models import KeyValueDB

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...


class SqlKeyValueStore:
    """Key-value store on top of a SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Optional[bytes]:
        # Refresh rows already in the session so reloads see other sessions' commits
        row = self.db.query(KeyValueDB).populate_existing().filter(KeyValueDB.key == key).first()
        return bytes(row.value) if row else None

    def set(self, key: str, value: bytes) -> None:
        row = self.db.query(KeyValueDB).filter(KeyValueDB.key == key).first()
        if row is None:
            row = KeyValueDB(key=key, value=value)
            self.db.add(row)
        else:
            row.value = value
            row.updated_at = datetime.utcnow()
        try:
            self.db.commit()
            logger.debug(f"Stored key {key} ({len(value)} bytes)")
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to store key {key}: {type(e).__name__}: {str(e)}")
            raise


class InMemoryKeyValueStore:
    """Dictionary-backed store for tests and ephemeral runs."""

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)
