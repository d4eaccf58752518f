"""Shared utilities for Asklepios."""

from __future__ import annotations

from asklepios.utils.exceptions import (
    KUBE_API_ERRORS,
    AsklepiosError,
    ClusterAPIError,
    ConfigError,
    log_and_continue,
)

__all__ = [
    "KUBE_API_ERRORS",
    "AsklepiosError",
    "ClusterAPIError",
    "ConfigError",
    "log_and_continue",
]
