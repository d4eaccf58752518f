"""Hysteresis rule mapping a member's Ready condition to a decision.

Thresholds are absolute timestamps computed once per cycle:

    kickout_threshold = now - kickout
    kickin_threshold  = now - kickin

A transition time older (smaller) than the threshold means the member has
been in its current state longer than the delay, so the action is due.
Otherwise the decision is WAIT with the seconds left until it is due.

    status != True:  ltt < kickout_threshold -> ISOLATE
                     else WAIT(ltt - kickout_threshold)
    status == True:  ltt < kickin_threshold  -> RESTORE
                     else WAIT(ltt - kickin_threshold)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from asklepios.cluster.models import Member, ReadinessStatus


class DecisionKind(Enum):
    """What the loop should do with a member this cycle."""

    ISOLATE = "isolate"
    RESTORE = "restore"
    WAIT = "wait"
    SKIP = "skip"


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating one member in one cycle."""

    kind: DecisionKind
    member: str
    status: Optional[ReadinessStatus] = None
    remaining: Optional[float] = None  # seconds, WAIT only

    @property
    def actionable(self) -> bool:
        return self.kind in (DecisionKind.ISOLATE, DecisionKind.RESTORE)

    @classmethod
    def skip(cls, member: str) -> Decision:
        return cls(kind=DecisionKind.SKIP, member=member)

    def __str__(self) -> str:
        if self.kind is DecisionKind.WAIT:
            return f"{self.member}: wait {self.remaining:g}s"
        return f"{self.member}: {self.kind.value}"


@dataclass(frozen=True)
class CycleThresholds:
    """Per-cycle thresholds shared by every member in the cycle."""

    now: float
    kickout_threshold: float
    kickin_threshold: float

    @classmethod
    def compute(cls, now: float, kickout_seconds: float, kickin_seconds: float) -> CycleThresholds:
        return cls(
            now=now,
            kickout_threshold=now - kickout_seconds,
            kickin_threshold=now - kickin_seconds,
        )


def evaluate_member(member: Member, thresholds: CycleThresholds) -> Optional[Decision]:
    """Apply the two-threshold readiness rule to a non-exempt member.

    Returns:
        The decision, or None when the member has no Ready condition or the
        condition carries no transition time (such a member is neither
        healthy nor unhealthy under this rule).
    """
    condition = member.ready_condition
    if condition is None or condition.last_transition_time is None:
        return None

    ltt = condition.last_transition_time
    if condition.status is not ReadinessStatus.TRUE:
        if ltt < thresholds.kickout_threshold:
            return Decision(DecisionKind.ISOLATE, member.name, condition.status)
        return Decision(
            DecisionKind.WAIT,
            member.name,
            condition.status,
            remaining=ltt - thresholds.kickout_threshold,
        )

    if ltt < thresholds.kickin_threshold:
        return Decision(DecisionKind.RESTORE, member.name, condition.status)
    return Decision(
        DecisionKind.WAIT,
        member.name,
        condition.status,
        remaining=ltt - thresholds.kickin_threshold,
    )
