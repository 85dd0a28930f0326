"""
Installation engine — variables, templates, conditions, safety,
pre-checks and the step orchestrator.

    from stepwright.core.engine import Orchestrator, PreCheckRunner
"""

from stepwright.core.engine.conditions import evaluate_condition, is_met
from stepwright.core.engine.events import RunEvents, Subscription
from stepwright.core.engine.prechecks import PreCheckReport, PreCheckRunner, run_pre_check
from stepwright.core.engine.safety import Classification, classify
from stepwright.core.engine.templates import resolve
from stepwright.core.engine.variables import VariableStore
from stepwright.core.engine.orchestrator import (  # noqa: I001
    Orchestrator,
    OrchestratorState,
    PendingPrompt,
    RunResult,
)

__all__ = [
    "Classification",
    "Orchestrator",
    "OrchestratorState",
    "PendingPrompt",
    "PreCheckReport",
    "PreCheckRunner",
    "RunEvents",
    "RunResult",
    "Subscription",
    "VariableStore",
    "classify",
    "evaluate_condition",
    "is_met",
    "resolve",
    "run_pre_check",
]
