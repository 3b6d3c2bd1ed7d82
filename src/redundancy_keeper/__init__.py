"""Redundancy keeper: keeps service clusters inside a spare-capacity band.

Responsibility: periodically evaluates per-service redundancy rules against
observed metrics and expands or shrinks clusters through the fleet
orchestration API.
"""

from .context import KeeperContext
from .keeper import RedundancyEvaluator, ScaleDirection, ScalingDecision, Scheduler, decide
from .rules import PredictRule, RuleStatus

__version__ = "0.1.0"

__all__ = [
    "KeeperContext",
    "RedundancyEvaluator",
    "Scheduler",
    "ScaleDirection",
    "ScalingDecision",
    "decide",
    "PredictRule",
    "RuleStatus",
    "__version__",
]
