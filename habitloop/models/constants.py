"""Constants for habitloop.

This module centralizes design constants and default values used throughout the application.
"""

# Materialization
HORIZON_DAYS = 30  # rolling look-ahead window, in whole days from invocation

# Durable store keys
ROUTINE_STORAGE_KEY = "routine-storage"
SETTINGS_STORAGE_KEY = "settings-storage"
ROUTINE_BACKUP_KEY = "routine-storage-unreadable"  # raw bytes kept when stored records fail to load

# Routine defaults
DEFAULT_ICON = "📚"
DEFAULT_COLOR = "#6366F1"

# Settings defaults
DEFAULT_THEME = "andalusianMosaic"
DEFAULT_ACCENT_COLOR = "#6366F1"
DEFAULT_FONT_SIZE = 16
DEFAULT_NOTIFICATIONS_ENABLED = True
DEFAULT_REMINDER_TIME = "08:00"

# Daily reminder content
REMINDER_TITLE = "Daily reminder"
REMINDER_BODY = "Time to review your daily routine and track your progress"
