"""Tests for SettingsStore persistence and reminder commits."""

from habitloop.database.kv_store import InMemoryKeyValueStore
from habitloop.models.constants import SETTINGS_STORAGE_KEY
from habitloop.models.settings import NotificationSettings
from habitloop.reminders.scheduler import CancelAllReminders, ReminderState, ScheduleDailyReminder
from habitloop.store.settings_store import SettingsStore


class TestSettingsStore:
    def test_defaults_on_first_run(self, settings_store):
        settings = settings_store.settings
        assert settings.theme == "andalusianMosaic"
        assert settings.font_size == 16
        assert settings.notifications == NotificationSettings(enabled=True, daily_reminder_time="08:00")

    def test_time_change_is_committed_before_effects_run(self, kv_store):
        store = SettingsStore(kv_store)

        transition = store.set_daily_reminder_time("19:45")

        assert transition.previous.daily_reminder_time == "08:00"
        assert SettingsStore(kv_store).notifications.daily_reminder_time == "19:45"
        assert transition.effects == (CancelAllReminders(), ScheduleDailyReminder(hour=19, minute=45))

    def test_disable_then_change_time_does_not_arm(self, settings_store):
        settings_store.toggle_notifications(False)

        transition = settings_store.set_daily_reminder_time("06:15")

        assert transition.state == ReminderState.DISARMED
        assert transition.effects == ()
        assert settings_store.notifications == NotificationSettings(enabled=False, daily_reminder_time="06:15")

    def test_toggle_on_uses_stored_time(self, settings_store):
        settings_store.toggle_notifications(False)
        settings_store.set_daily_reminder_time("06:15")

        transition = settings_store.toggle_notifications(True)

        assert transition.effects[-1] == ScheduleDailyReminder(hour=6, minute=15)

    def test_appearance_update_keeps_notifications(self, settings_store):
        settings_store.set_daily_reminder_time("10:00")

        settings = settings_store.update_appearance(theme="desertNight", font_size=18)

        assert settings.theme == "desertNight"
        assert settings.font_size == 18
        assert settings.notifications.daily_reminder_time == "10:00"

    def test_reconcile_rearms_without_changing_settings(self, settings_store):
        transition = settings_store.reconcile()

        assert transition.previous == transition.current
        assert transition.effects[-1] == ScheduleDailyReminder(hour=8, minute=0)

    def test_corrupt_settings_fall_back_to_defaults(self):
        kv = InMemoryKeyValueStore()
        kv.set(SETTINGS_STORAGE_KEY, b'{"notifications": {"daily_reminder_time": "8am"}}')

        assert SettingsStore(kv).notifications.daily_reminder_time == "08:00"

    def test_stale_store_reloads_before_changing(self):
        kv = InMemoryKeyValueStore()
        first = SettingsStore(kv)
        second = SettingsStore(kv)

        first.disable_reminder()
        transition = second.set_daily_reminder_time("07:15")

        assert transition.effects == ()
        assert SettingsStore(kv).notifications == NotificationSettings(enabled=False, daily_reminder_time="07:15")
