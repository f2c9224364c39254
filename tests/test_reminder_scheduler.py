"""Tests for the reminder state machine, effect runner, and local backend."""

import logging
import threading
import time

import pytest
from datetime import datetime
from unittest.mock import MagicMock

from habitloop.errors import ExternalSubsystemError
from habitloop.models.settings import NotificationSettings
from habitloop.reminders import scheduler
from habitloop.reminders.backends import LocalNotificationBackend, NullNotificationBackend
from habitloop.reminders.runner import ReminderEffectRunner
from habitloop.reminders.scheduler import (
    CancelAllReminders,
    ReminderState,
    ScheduleDailyReminder,
    plan_reminder_transition,
)


def _settings(enabled=True, time="08:00"):
    return NotificationSettings(enabled=enabled, daily_reminder_time=time)


class TestPlanTransition:
    def test_enabled_cancels_then_schedules(self):
        t = plan_reminder_transition(_settings(False), _settings(True, "07:05"))

        assert t.effects == (CancelAllReminders(), ScheduleDailyReminder(hour=7, minute=5))
        assert t.state == ReminderState.ARMED

    def test_disabled_cancels_only(self):
        t = plan_reminder_transition(_settings(True), _settings(False))

        assert t.effects == (CancelAllReminders(),)
        assert t.state == ReminderState.DISARMED

    def test_is_pure(self):
        prev, new = _settings(True, "09:30"), _settings(True, "14:00")
        assert plan_reminder_transition(prev, new) == plan_reminder_transition(prev, new)
        assert prev.daily_reminder_time == "09:30"


class TestTransitions:
    def test_enable_keeps_time_when_none_given(self):
        t = scheduler.enable(_settings(False, "21:15"))
        assert t.current == _settings(True, "21:15")

    def test_disable_when_disarmed_still_cancels(self):
        t = scheduler.disable(_settings(False))
        assert t.effects == (CancelAllReminders(),)

    def test_change_time_while_armed_rearms(self):
        t = scheduler.change_time(_settings(True, "08:00"), "22:45")
        assert t.effects[-1] == ScheduleDailyReminder(hour=22, minute=45)

    def test_change_time_while_disarmed_only_persists(self):
        t = scheduler.change_time(_settings(False, "08:00"), "22:45")
        assert t.effects == ()
        assert t.current == _settings(False, "22:45")

    def test_malformed_time_is_rejected_at_the_model(self):
        with pytest.raises(ValueError):
            scheduler.change_time(_settings(), "24:00")


class TestRunner:
    def test_single_trigger_after_rearm(self, backend, runner):
        first = scheduler.enable(_settings(False), "09:30")
        runner.run(first.effects)
        second = scheduler.enable(first.current, "14:00")
        result = runner.run(second.effects)

        triggers = backend.scheduled()
        assert result == ReminderState.ARMED
        assert len(triggers) == 1
        assert (triggers[0].hour, triggers[0].minute) == (14, 0)

    def test_any_sequence_leaves_at_most_one_trigger(self, backend, runner):
        state = _settings(False)
        steps = [
            lambda s: scheduler.enable(s, "06:00"),
            lambda s: scheduler.change_time(s, "07:00"),
            lambda s: scheduler.enable(s),
            scheduler.disable,
            lambda s: scheduler.change_time(s, "08:30"),
            lambda s: scheduler.enable(s),
            lambda s: scheduler.change_time(s, "23:59"),
        ]
        for step in steps:
            t = step(state)
            runner.run(t.effects)
            state = t.current
            assert len(backend.scheduled()) <= 1
        assert [(x.hour, x.minute) for x in backend.scheduled()] == [(23, 59)]

    def test_disable_clears_triggers(self, backend, runner):
        runner.run(scheduler.enable(_settings(False), "10:00").effects)
        result = runner.run(scheduler.disable(_settings(True, "10:00")).effects)

        assert result == ReminderState.DISARMED
        assert backend.scheduled() == []

    def test_permission_denied_stays_disarmed(self, backend, runner):
        backend.permission_granted = False

        result = runner.run(scheduler.enable(_settings(False)).effects)

        assert result == ReminderState.DISARMED
        assert backend.scheduled() == []

    def test_effective_state_is_logged(self, backend, runner, caplog):
        backend.permission_granted = False

        with caplog.at_level(logging.INFO, logger="habitloop.reminders.runner"):
            runner.run(scheduler.enable(_settings(False)).effects)

        assert "effective state disarmed" in caplog.text

    def test_concurrent_runs_leave_one_trigger(self):
        class SlowBackend(LocalNotificationBackend):
            def schedule_recurring(self, hour, minute, title, body):
                time.sleep(0.05)
                return super().schedule_recurring(hour, minute, title, body)

        backend = SlowBackend()
        runner = ReminderEffectRunner(backend)
        threads = [
            threading.Thread(target=runner.run, args=(scheduler.enable(_settings(False), t).effects,))
            for t in ("09:00", "10:00")
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(backend.scheduled()) == 1

    def test_schedule_failure_is_swallowed(self):
        backend = MagicMock()
        backend.supported = True
        backend.request_permission.return_value = True
        backend.schedule_recurring.side_effect = ExternalSubsystemError("boom")

        result = ReminderEffectRunner(backend).run(scheduler.enable(_settings(False)).effects)

        assert result == ReminderState.DISARMED
        backend.cancel_all.assert_called_once()

    def test_cancel_failure_skips_scheduling(self):
        backend = MagicMock()
        backend.supported = True
        backend.cancel_all.side_effect = RuntimeError("subsystem unavailable")

        result = ReminderEffectRunner(backend).run(scheduler.enable(_settings(False)).effects)

        assert result == ReminderState.DISARMED
        backend.schedule_recurring.assert_not_called()

    def test_unsupported_platform_is_a_no_op(self):
        backend = MagicMock(spec=NullNotificationBackend)
        backend.supported = False

        result = ReminderEffectRunner(backend).run(scheduler.enable(_settings(False)).effects)

        assert result == ReminderState.DISARMED
        backend.cancel_all.assert_not_called()
        backend.schedule_recurring.assert_not_called()


class TestLocalBackend:
    def test_fires_once_per_matching_minute(self):
        fired = []
        backend = LocalNotificationBackend(on_fire=fired.append)
        backend.schedule_recurring(7, 30, "title", "body")

        assert backend.fire_due(datetime(2026, 10, 18, 7, 29, 59)) == 0
        assert backend.fire_due(datetime(2026, 10, 18, 7, 30, 0)) == 1
        assert backend.fire_due(datetime(2026, 10, 18, 7, 30, 30)) == 0
        assert backend.fire_due(datetime(2026, 10, 19, 7, 30, 5)) == 1
        assert len(fired) == 2

    def test_delivery_error_does_not_propagate(self):
        backend = LocalNotificationBackend(on_fire=MagicMock(side_effect=RuntimeError("no display")))
        backend.schedule_recurring(12, 0, "title", "body")

        assert backend.fire_due(datetime(2026, 10, 18, 12, 0)) == 1

    def test_rejects_invalid_time(self):
        with pytest.raises(ExternalSubsystemError):
            LocalNotificationBackend().schedule_recurring(25, 0, "title", "body")

    def test_stop_joins_tick_thread(self):
        backend = LocalNotificationBackend(tick_seconds=10)
        backend.start()
        thread = backend._thread

        backend.stop()

        assert not thread.is_alive()
        assert backend._thread is None
