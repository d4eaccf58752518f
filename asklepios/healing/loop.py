"""Reconciliation Loop - drives the healing cycle for control-plane members.

Each cycle:
1. List control-plane members
2. Compute kickout/kickin thresholds once for the whole cycle
3. Per member: exemption check -> evaluation -> isolation/restoration
4. Sleep the poll interval

Faults never end the loop. A failed listing ends the cycle early and the
loop retries after the normal poll interval. A failure on one member is
logged and the remaining members are still processed.

The blocking cluster calls of a cycle run in a worker thread; the cycle is
awaited as a whole, so members are processed strictly one after another.

Usage:
    context = HealingContext.create(client, settings)
    loop = ReconciliationLoop(context)
    await loop.run_forever()
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from asklepios.cluster.client import NodeClient
from asklepios.cluster.models import Member, ReadinessStatus
from asklepios.config.settings import HealingSettings
from asklepios.healing.actuator import ActuationResult, IsolationActuator
from asklepios.healing.evaluator import (
    CycleThresholds,
    Decision,
    DecisionKind,
    evaluate_member,
)
from asklepios.healing.skip_filter import SkipFilter
from asklepios.loops.base import BaseLoop
from asklepios.utils.exceptions import ClusterAPIError, log_and_continue

logger = logging.getLogger(__name__)


@dataclass
class HealingContext:
    """Everything a reconciliation cycle needs, built once at startup."""

    client: NodeClient
    settings: HealingSettings
    skip_filter: SkipFilter
    actuator: IsolationActuator
    clock: Callable[[], float] = time.time

    @classmethod
    def create(
        cls,
        client: NodeClient,
        settings: HealingSettings,
        clock: Callable[[], float] = time.time,
    ) -> HealingContext:
        return cls(
            client=client,
            settings=settings,
            skip_filter=SkipFilter(client),
            actuator=IsolationActuator(client, dry_run=settings.dry_run, clock=clock),
            clock=clock,
        )


@dataclass
class CycleReport:
    """What happened during one reconciliation cycle."""

    started_at: float
    listing_error: Optional[str] = None
    members_seen: int = 0
    decisions: list[Decision] = field(default_factory=list)
    failures: list[ActuationResult] = field(default_factory=list)

    @property
    def listing_failed(self) -> bool:
        return self.listing_error is not None

    def count(self, kind: DecisionKind) -> int:
        return sum(1 for d in self.decisions if d.kind is kind)


class ReconciliationLoop(BaseLoop):
    """Periodically isolates or restores control-plane members.

    Holds counters for health reporting only; decisions are recomputed from
    the cluster's current state every cycle.
    """

    def __init__(self, context: HealingContext, enabled: bool = True):
        self.context = context
        super().__init__(
            name="reconciliation",
            interval=context.settings.sleep_seconds,
            enabled=enabled,
        )
        self._cycles_completed = 0
        self._listing_failures = 0
        self._isolations = 0
        self._restorations = 0
        self._action_failures = 0
        self._last_error: Optional[str] = None
        self._last_report: Optional[CycleReport] = None

    async def _on_start(self) -> None:
        logger.info(f"[ReconciliationLoop] Asklepios service is starting ({self.context.settings})")

    async def _run_once(self) -> None:
        await asyncio.to_thread(self.reconcile_once)

    def reconcile_once(self) -> CycleReport:
        """Run one full cycle synchronously and return its report."""
        report = CycleReport(started_at=self.context.clock())

        try:
            members = self.context.client.list_control_plane_members()
        except ClusterAPIError as e:
            self._listing_failures += 1
            self._last_error = str(e)
            report.listing_error = str(e)
            log_and_continue(e, "ReconciliationLoop", logger, logging.ERROR)
            self._last_report = report
            return report

        settings = self.context.settings
        thresholds = CycleThresholds.compute(
            self.context.clock(), settings.kickout_seconds, settings.kickin_seconds
        )
        report.members_seen = len(members)

        for member in members:
            decision = self._process_member(member, thresholds, report)
            if decision is not None:
                report.decisions.append(decision)

        self._cycles_completed += 1
        if not report.failures:
            self._last_error = None
        self._last_report = report
        return report

    def _process_member(
        self,
        member: Member,
        thresholds: CycleThresholds,
        report: CycleReport,
    ) -> Optional[Decision]:
        if self.context.skip_filter.is_exempt(member):
            return Decision.skip(member.name)

        decision = evaluate_member(member, thresholds)
        if decision is None:
            logger.debug(
                f"[ReconciliationLoop] {member.name} has no usable Ready condition, ignoring"
            )
            return None

        self._log_decision(decision)

        if decision.kind is DecisionKind.ISOLATE:
            results = self.context.actuator.isolate(member.name)
        elif decision.kind is DecisionKind.RESTORE:
            results = self.context.actuator.restore(member.name)
        else:
            return decision

        for result in results:
            if not result.success:
                self._action_failures += 1
                self._last_error = result.error
                report.failures.append(result)
                logger.error(
                    f"[ReconciliationLoop] Failed to {result.action} on {result.member}: "
                    f"{result.error}"
                )
            elif result.changed:
                if decision.kind is DecisionKind.ISOLATE:
                    self._isolations += 1
                else:
                    self._restorations += 1
        return decision

    def _log_decision(self, decision: Decision) -> None:
        status = decision.status.value if decision.status else "n/a"
        if decision.kind is DecisionKind.ISOLATE:
            logger.info(
                f"[ReconciliationLoop] Node is not ready: node={decision.member} "
                f"status={status} kickedOut=true"
            )
        elif decision.kind is DecisionKind.RESTORE:
            logger.info(
                f"[ReconciliationLoop] Node is ready: node={decision.member} "
                f"status={status} kickedIn=true"
            )
        elif decision.status is not ReadinessStatus.TRUE:
            logger.info(
                f"[ReconciliationLoop] Node is not ready: node={decision.member} "
                f"status={status} kickedOut=false timeToKickOut={decision.remaining:g}s"
            )
        else:
            logger.info(
                f"[ReconciliationLoop] Node is ready: node={decision.member} "
                f"status={status} kickedIn=false timeToKickIn={decision.remaining:g}s"
            )

    @property
    def last_report(self) -> Optional[CycleReport]:
        return self._last_report

    def health_check(self) -> dict[str, Any]:
        """Return health status for monitoring."""
        is_healthy = self._last_error is None
        return {
            "healthy": is_healthy,
            "status": "healthy" if is_healthy else "degraded",
            "message": self._last_error or f"Cycles: {self._cycles_completed}",
            "details": {
                "cycles_completed": self._cycles_completed,
                "listing_failures": self._listing_failures,
                "isolations": self._isolations,
                "restorations": self._restorations,
                "action_failures": self._action_failures,
                "last_error": self._last_error,
                "dry_run": self.context.settings.dry_run,
                "interval": self.interval,
                **self.stats.to_dict(),
            },
        }
