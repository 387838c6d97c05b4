"""Reconciliation controller."""

from kubeshape.controller.apply import ApplyAction, ApplyEngine, ApplyResult, merge_owned
from kubeshape.controller.reconciler import CycleResult, Reconciler, StepOutcome, render_desired
from kubeshape.controller.status import StatusTracker

__all__ = [
    "ApplyAction",
    "ApplyEngine",
    "ApplyResult",
    "CycleResult",
    "Reconciler",
    "StatusTracker",
    "StepOutcome",
    "merge_owned",
    "render_desired",
]
