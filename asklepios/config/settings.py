"""Healing thresholds: YAML file, environment overrides and defaults.

The config file is optional. A missing file means the defaults apply; a file
that exists but cannot be parsed is a fatal startup error.

Example config.yaml:
    sleep: 10     # seconds between reconciliation cycles
    kickout: 60   # seconds a member must stay not-ready before isolation
    kickin: 60    # seconds a member must stay ready before restoration

Environment variables (override the file):
    ASKLEPIOS_SLEEP, ASKLEPIOS_KICKOUT, ASKLEPIOS_KICKIN, ASKLEPIOS_DRY_RUN

Usage:
    from asklepios.config import load_settings

    settings = load_settings("config.yaml")
    print(settings.kickout_seconds)
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, ClassVar

import yaml

from asklepios.utils.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "config.yaml"

DEFAULT_SLEEP_SECONDS = 10.0
DEFAULT_KICKOUT_SECONDS = 60.0
DEFAULT_KICKIN_SECONDS = 60.0

# Config file key -> HealingSettings field
_FILE_KEYS: dict[str, str] = {
    "sleep": "sleep_seconds",
    "kickout": "kickout_seconds",
    "kickin": "kickin_seconds",
    "dry_run": "dry_run",
}

_TRUE_VALUES = ("true", "1", "yes", "on")
_FALSE_VALUES = ("false", "0", "no", "off", "")


@dataclass(frozen=True)
class HealingSettings:
    """Thresholds that drive the reconciliation loop.

    Attributes:
        sleep_seconds: Poll interval between cycles
        kickout_seconds: How long a member must be not-ready before isolation
        kickin_seconds: How long a member must be ready before restoration
        dry_run: Log intended mutations without calling the cluster API
    """

    _env_prefix: ClassVar[str] = "ASKLEPIOS"

    sleep_seconds: float = DEFAULT_SLEEP_SECONDS
    kickout_seconds: float = DEFAULT_KICKOUT_SECONDS
    kickin_seconds: float = DEFAULT_KICKIN_SECONDS
    dry_run: bool = False

    def __post_init__(self) -> None:
        for name in ("sleep_seconds", "kickout_seconds", "kickin_seconds"):
            value = getattr(self, name)
            if not math.isfinite(value):
                raise ConfigError(f"{name} must be a finite number, got {value}")
            if value < 0:
                raise ConfigError(f"{name} must be >= 0, got {value}")

    # -------------------------------------------------------------------------
    # Environment Variable Helpers
    # -------------------------------------------------------------------------

    @classmethod
    def _make_env_key(cls, suffix: str) -> str:
        return f"{cls._env_prefix}_{suffix}"

    @classmethod
    def _get_env_seconds(cls, suffix: str) -> float | None:
        key = cls._make_env_key(suffix)
        value = os.environ.get(key)
        if value is None:
            return None
        return _coerce_seconds(key, value)

    @classmethod
    def _get_env_bool(cls, suffix: str) -> bool | None:
        key = cls._make_env_key(suffix)
        value = os.environ.get(key)
        if value is None:
            return None
        return _coerce_bool(key, value)

    def with_env_overrides(self) -> HealingSettings:
        """Return a copy with ASKLEPIOS_* environment variables applied."""
        overrides: dict[str, Any] = {}
        for suffix, name in (
            ("SLEEP", "sleep_seconds"),
            ("KICKOUT", "kickout_seconds"),
            ("KICKIN", "kickin_seconds"),
        ):
            value = self._get_env_seconds(suffix)
            if value is not None:
                overrides[name] = value
        dry_run = self._get_env_bool("DRY_RUN")
        if dry_run is not None:
            overrides["dry_run"] = dry_run
        if not overrides:
            return self
        logger.debug(f"Applying environment overrides: {overrides}")
        return replace(self, **overrides)

    # -------------------------------------------------------------------------
    # Utility Methods
    # -------------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary for logging."""
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def __str__(self) -> str:
        return (
            f"sleep={self.sleep_seconds:g}s kickout={self.kickout_seconds:g}s "
            f"kickin={self.kickin_seconds:g}s dry_run={self.dry_run}"
        )


def _coerce_seconds(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be a number of seconds, got {value!r}")
    try:
        seconds = float(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ConfigError(f"{key} must be a number of seconds, got {value!r}") from e
    if not math.isfinite(seconds):
        raise ConfigError(f"{key} must be a finite number of seconds, got {value!r}")
    return seconds


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ConfigError(f"{key} must be a boolean, got {value!r}")


def _read_config_file(path: Path) -> dict[str, Any]:
    """Parse the YAML config file into a mapping."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse error in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping, got {type(data).__name__}"
        )
    return data


def settings_from_mapping(data: dict[str, Any]) -> HealingSettings:
    """Build HealingSettings from a parsed config mapping."""
    values: dict[str, Any] = {}
    for key, raw in data.items():
        name = _FILE_KEYS.get(key)
        if name is None:
            logger.warning(f"Ignoring unknown config key: {key}")
            continue
        if name == "dry_run":
            values[name] = _coerce_bool(key, raw)
        else:
            values[name] = _coerce_seconds(key, raw)
    return HealingSettings(**values)


def load_settings(
    path: str | os.PathLike[str] = DEFAULT_CONFIG_PATH,
    apply_env: bool = True,
) -> HealingSettings:
    """Load healing settings from an optional YAML file.

    Args:
        path: Config file path; a missing file is not an error
        apply_env: Whether ASKLEPIOS_* environment variables override the file

    Returns:
        Validated HealingSettings

    Raises:
        ConfigError: If the file exists but is malformed, or a value is invalid
    """
    config_path = Path(path)
    if config_path.exists():
        logger.debug(f"Found config file: {config_path}")
        settings = settings_from_mapping(_read_config_file(config_path))
    else:
        logger.debug(f"Could not find config file {config_path}, using default config values")
        settings = HealingSettings()

    if apply_env:
        settings = settings.with_env_overrides()
    return settings
