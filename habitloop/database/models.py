"""SQLAlchemy database models for habitloop."""

from datetime import datetime

from sqlalchemy import Column, DateTime, LargeBinary, String

from habitloop.database.database import Base


class KeyValueDB(Base):
    """One durable key holding an opaque serialized aggregate."""

    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(LargeBinary, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
