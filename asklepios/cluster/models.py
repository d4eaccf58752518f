"""Member snapshots as seen by the healing loop.

A Member is built fresh from the cluster API every cycle and thrown away
once its decision has been made. Nothing here is cached across cycles.

Key concepts:
- ReadinessStatus: Unified status of the Ready condition
- ReadinessCondition: One node condition with its last transition time
- MarkerEffect / Marker: Node taints
- Member: A control-plane node snapshot
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

READY_CONDITION_TYPE = "Ready"


class ReadinessStatus(Enum):
    """Status of a node condition.

    Values match the strings used by the Kubernetes API.
    """

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> ReadinessStatus:
        """Map an API status string to a ReadinessStatus (UNKNOWN if unrecognized)."""
        for status in cls:
            if status.value == value:
                return status
        return cls.UNKNOWN


class MarkerEffect(Enum):
    """Scheduling effect of a marker (Kubernetes taint effect)."""

    NO_SCHEDULE = "NoSchedule"
    PREFER_NO_SCHEDULE = "PreferNoSchedule"
    NO_EXECUTE = "NoExecute"


@dataclass(frozen=True)
class ReadinessCondition:
    """A node condition and when it last changed status."""

    type: str
    status: ReadinessStatus
    last_transition_time: Optional[float]  # epoch seconds; None if the API omitted it

    @property
    def is_ready(self) -> bool:
        return self.status is ReadinessStatus.TRUE


@dataclass(frozen=True)
class Marker:
    """A key/value/effect annotation on a member (Kubernetes taint).

    Two markers are the same marker when key and effect match; value and
    time_added are payload.
    """

    key: str
    value: str = ""
    effect: MarkerEffect = MarkerEffect.NO_SCHEDULE
    time_added: Optional[float] = None  # epoch seconds

    def matches(self, other: Marker) -> bool:
        """Check if both markers identify the same taint (key and effect)."""
        return self.key == other.key and self.effect == other.effect

    def __str__(self) -> str:
        return f"{self.key}={self.value}:{self.effect.value}"


@dataclass
class Member:
    """Snapshot of a control-plane member.

    Attributes:
        name: Node name
        conditions: Node conditions in API order
        unschedulable: Whether new workloads are blocked (cordoned)
        taints: Current markers
        resource_version: Optimistic-concurrency token from the API
    """

    name: str
    conditions: list[ReadinessCondition] = field(default_factory=list)
    unschedulable: bool = False
    taints: list[Marker] = field(default_factory=list)
    resource_version: Optional[str] = None

    @property
    def ready_condition(self) -> Optional[ReadinessCondition]:
        """The Ready condition, or None if the member does not report one."""
        for condition in self.conditions:
            if condition.type == READY_CONDITION_TYPE:
                return condition
        return None

    def __str__(self) -> str:
        condition = self.ready_condition
        status = condition.status.value if condition else "n/a"
        return f"{self.name} (Ready={status}, unschedulable={self.unschedulable})"
