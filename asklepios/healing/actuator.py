"""Isolation Actuator - idempotent cordon/taint of control-plane members.

Isolation = scheduling blocked + out-of-service marker present.
Restoration = both cleared.

Each step re-reads the member right before writing and only writes when the
current state differs from the desired state, so repeated calls and
concurrent external changes never produce redundant writes.

Ordering:
- isolate(): block scheduling, then add the marker (no new workload lands
  on the member while the marker is written)
- restore(): remove the marker, then unblock scheduling

Key features:
- Re-check then mutate, no redundant writes
- Marker writes carry the member's resource version
- Dry-run mode for testing
- Per-step results for the caller to log
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional

from asklepios.cluster.client import NodeClient
from asklepios.cluster.markers import (
    OUT_OF_SERVICE_MARKER,
    add_or_update_marker,
    marker_exists,
    out_of_service_marker,
    remove_marker,
)
from asklepios.utils.exceptions import ClusterAPIError

logger = logging.getLogger(__name__)


@dataclass
class ActuationResult:
    """Result of one actuator step."""

    success: bool
    member: str
    action: str
    changed: bool = False
    error: Optional[str] = None
    dry_run: bool = False
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        if not self.success:
            return f"{self.member}: {self.action} failed: {self.error}"
        if self.dry_run:
            return f"DRY RUN: {self.member}: would {self.action}"
        if self.changed:
            return f"{self.member}: {self.action}"
        return f"{self.member}: {self.action} (already done)"


class IsolationActuator:
    """Applies and removes isolation on members through a NodeClient.

    Usage:
        actuator = IsolationActuator(client)
        for result in actuator.isolate("cp-1"):
            if not result.success:
                logger.error(str(result))
    """

    def __init__(
        self,
        client: NodeClient,
        dry_run: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the actuator.

        Args:
            client: Cluster access
            dry_run: If True, log mutations but don't call the API
            clock: Source of "now" for the marker's time_added
        """
        self._client = client
        self.dry_run = dry_run
        self._clock = clock

    def set_scheduling_block(self, name: str, blocked: bool) -> ActuationResult:
        """Make the member unschedulable (blocked=True) or schedulable again."""
        action = "make the node unschedulable" if blocked else "make the node schedulable"
        try:
            member = self._client.get_member(name)
        except ClusterAPIError as e:
            return ActuationResult(success=False, member=name, action=action, error=str(e))

        if member.unschedulable == blocked:
            return ActuationResult(success=True, member=name, action=action)

        if self.dry_run:
            logger.info(f"[DRY RUN] Would {action}: {name}")
            return ActuationResult(success=True, member=name, action=action, dry_run=True)

        try:
            self._client.set_unschedulable(name, blocked)
        except ClusterAPIError as e:
            return ActuationResult(success=False, member=name, action=action, error=str(e))

        logger.info(f"[IsolationActuator] Succeeded to process the node {name}: {action}")
        return ActuationResult(success=True, member=name, action=action, changed=True)

    def set_out_of_service_marker(self, name: str, present: bool) -> ActuationResult:
        """Add (present=True) or remove the out-of-service marker."""
        action = (
            "add the out-of-service taint" if present else "remove the out-of-service taint"
        )
        try:
            member = self._client.get_member(name)
        except ClusterAPIError as e:
            return ActuationResult(success=False, member=name, action=action, error=str(e))

        if marker_exists(member.taints, OUT_OF_SERVICE_MARKER) == present:
            return ActuationResult(success=True, member=name, action=action)

        if present:
            markers, updated = add_or_update_marker(
                member.taints, out_of_service_marker(self._clock())
            )
        else:
            markers, updated = remove_marker(member.taints, OUT_OF_SERVICE_MARKER)
        if not updated:
            return ActuationResult(success=True, member=name, action=action)

        if self.dry_run:
            logger.info(f"[DRY RUN] Would {action}: {name}")
            return ActuationResult(success=True, member=name, action=action, dry_run=True)

        try:
            self._client.replace_markers(name, markers, member.resource_version)
        except ClusterAPIError as e:
            return ActuationResult(success=False, member=name, action=action, error=str(e))

        logger.info(f"[IsolationActuator] Succeeded to process the node {name}: {action}")
        return ActuationResult(success=True, member=name, action=action, changed=True)

    def isolate(self, name: str) -> list[ActuationResult]:
        """Block scheduling, then add the out-of-service marker.

        Both steps are attempted even if the first one fails.
        """
        return [
            self.set_scheduling_block(name, True),
            self.set_out_of_service_marker(name, True),
        ]

    def restore(self, name: str) -> list[ActuationResult]:
        """Remove the out-of-service marker, then unblock scheduling.

        Both steps are attempted even if the first one fails.
        """
        return [
            self.set_out_of_service_marker(name, False),
            self.set_scheduling_block(name, False),
        ]
