"""
Configuration: platform constants and stack settings.
"""

from querystack.config.settings import (
    DEFAULT_SETTINGS_FILE,
    SettingsError,
    StackSettings,
    load_settings,
)

__all__ = [
    "StackSettings",
    "SettingsError",
    "load_settings",
    "DEFAULT_SETTINGS_FILE",
]
