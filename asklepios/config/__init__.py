"""Configuration loading for Asklepios."""

from asklepios.config.settings import (
    DEFAULT_CONFIG_PATH,
    HealingSettings,
    load_settings,
    settings_from_mapping,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "HealingSettings",
    "load_settings",
    "settings_from_mapping",
]
