"""Control-plane healing: exemption, evaluation, actuation and the loop.

Key components:
- SkipFilter: Members an operator opted out of automation
- evaluate_member: Two-threshold readiness rule producing a Decision
- IsolationActuator: Idempotent cordon + out-of-service taint
- ReconciliationLoop: Drives the cycle forever

Usage:
    from asklepios.healing import HealingContext, ReconciliationLoop

    context = HealingContext.create(client, settings)
    await ReconciliationLoop(context).run_forever()
"""

from asklepios.healing.actuator import ActuationResult, IsolationActuator
from asklepios.healing.evaluator import (
    CycleThresholds,
    Decision,
    DecisionKind,
    evaluate_member,
)
from asklepios.healing.loop import CycleReport, HealingContext, ReconciliationLoop
from asklepios.healing.skip_filter import SkipFilter

__all__ = [
    # Evaluator
    "CycleThresholds",
    "Decision",
    "DecisionKind",
    "evaluate_member",
    # Skip filter
    "SkipFilter",
    # Actuator
    "ActuationResult",
    "IsolationActuator",
    # Loop
    "CycleReport",
    "HealingContext",
    "ReconciliationLoop",
]
