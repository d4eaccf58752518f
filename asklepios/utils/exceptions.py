"""Exception types and narrow exception tuples for Asklepios.

Configuration faults are fatal and surface before the reconciliation loop
starts. Cluster API faults are always recoverable: the loop logs them and
tries again on the next cycle.

Usage:
    from asklepios.utils.exceptions import ClusterAPIError, log_and_continue

    try:
        members = client.list_control_plane_members()
    except ClusterAPIError as e:
        log_and_continue(e, "list_members", logger, logging.ERROR)
"""

from __future__ import annotations

import logging

import urllib3
from kubernetes.client.exceptions import ApiException

__all__ = [
    "AsklepiosError",
    "ConfigError",
    "ClusterAPIError",
    "KUBE_API_ERRORS",
    "log_and_continue",
]


# =============================================================================
# Exception Type Tuples
# =============================================================================

# Errors raised by the kubernetes client while talking to the API server
# Use for: list/get/patch calls made through kubernetes.client.CoreV1Api
KUBE_API_ERRORS: tuple[type[BaseException], ...] = (
    ApiException,                  # Non-2xx response from the API server
    urllib3.exceptions.HTTPError,  # Connection, TLS and protocol failures
    ConnectionError,
    TimeoutError,
    OSError,
)


# =============================================================================
# Exception Classes
# =============================================================================


class AsklepiosError(Exception):
    """Base class for all errors raised by Asklepios."""


class ConfigError(AsklepiosError):
    """Raised when the configuration file or environment is malformed.

    This is a fail-fast error: the process must not start the healing loop
    with thresholds it could not read.
    """


class ClusterAPIError(AsklepiosError):
    """Raised when a call to the cluster API fails.

    Attributes:
        operation: Client operation that failed (e.g. "list_nodes")
        name: Member name the call targeted, if any
        status: HTTP status returned by the API server, if any
    """

    def __init__(
        self,
        message: str,
        operation: str = "",
        name: str | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.name = name
        self.status = status

    @property
    def not_found(self) -> bool:
        """True when the API server reported the object as missing."""
        return self.status == 404

    @property
    def conflict(self) -> bool:
        """True when an optimistic-concurrency precondition failed."""
        return self.status == 409

    @classmethod
    def wrap(
        cls,
        error: BaseException,
        operation: str,
        name: str | None = None,
    ) -> ClusterAPIError:
        """Build a ClusterAPIError from a client-level exception."""
        status = None
        if isinstance(error, ApiException):
            status = error.status
            detail = f"HTTP {error.status} {error.reason}".strip()
        else:
            detail = f"{type(error).__name__}: {error}"
        target = f" {name}" if name else ""
        return cls(
            f"{operation}{target} failed: {detail}",
            operation=operation,
            name=name,
            status=status,
        )


# =============================================================================
# Utility Functions
# =============================================================================


def log_and_continue(
    e: BaseException,
    context: str,
    logger_instance: logging.Logger,
    level: int = logging.WARNING,
) -> None:
    """Log exception with context, allowing the caller to continue.

    Args:
        e: The exception that was caught
        context: Short description of the operation (e.g., "list_members")
        logger_instance: Logger to use for logging
        level: Logging level (default: WARNING)
    """
    logger_instance.log(
        level,
        f"[{context}] Caught {type(e).__name__}: {e}",
    )
