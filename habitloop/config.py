"""Runtime configuration for habitloop.

Values come from the environment (optionally a `.env` file).
"""

import os
from dataclasses import dataclass
from enum import Enum

from dotenv import load_dotenv

load_dotenv()


class Platform(str, Enum):
    """Host platform flavour; decides which notification backend is used."""
    NATIVE = "native"
    WEB = "web"


class RematerializePolicy(str, Enum):
    """What happens to future task instances when a routine's schedule is edited."""
    NONE = "none"
    REPLACE_FUTURE = "replace_future"


@dataclass(frozen=True)
class AppConfig:
    database_url: str
    platform: Platform
    rematerialize_policy: RematerializePolicy
    log_level: str


def _enum_from_env(name: str, enum_class, default):
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return enum_class(raw.strip().lower())
    except ValueError:
        return default


def load_config() -> AppConfig:
    """Build an AppConfig from the current environment."""
    return AppConfig(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./habitloop.db"),
        platform=_enum_from_env("HABITLOOP_PLATFORM", Platform, Platform.NATIVE),
        rematerialize_policy=_enum_from_env(
            "HABITLOOP_REMATERIALIZE_POLICY", RematerializePolicy, RematerializePolicy.NONE
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
