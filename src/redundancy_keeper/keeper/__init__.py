"""Redundancy evaluation and scheduling."""

from .decision import MAX_STEP, ScaleDirection, ScalingDecision, decide, median
from .evaluator import RedundancyEvaluator
from .scheduler import Scheduler

__all__ = [
    "MAX_STEP",
    "ScaleDirection",
    "ScalingDecision",
    "decide",
    "median",
    "RedundancyEvaluator",
    "Scheduler",
]
