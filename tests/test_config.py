"""Tests for environment-driven configuration."""

from habitloop.config import Platform, RematerializePolicy, load_config
from habitloop.reminders.backends import LocalNotificationBackend, NullNotificationBackend, build_backend


def test_defaults(monkeypatch):
    monkeypatch.delenv("HABITLOOP_PLATFORM", raising=False)
    monkeypatch.delenv("HABITLOOP_REMATERIALIZE_POLICY", raising=False)

    config = load_config()

    assert config.platform == Platform.NATIVE
    assert config.rematerialize_policy == RematerializePolicy.NONE


def test_overrides_and_unknown_values(monkeypatch):
    monkeypatch.setenv("HABITLOOP_PLATFORM", "WEB")
    monkeypatch.setenv("HABITLOOP_REMATERIALIZE_POLICY", "sometimes")

    config = load_config()

    assert config.platform == Platform.WEB
    assert config.rematerialize_policy == RematerializePolicy.NONE


def test_backend_per_platform():
    assert isinstance(build_backend(Platform.WEB), NullNotificationBackend)
    assert isinstance(build_backend(Platform.NATIVE), LocalNotificationBackend)
