"""Scaling rules and where they come from."""

from .models import PredictRule, RuleStatus
from .store import RuleStore, StaticRuleStore, YamlRuleStore

__all__ = ["PredictRule", "RuleStatus", "RuleStore", "StaticRuleStore", "YamlRuleStore"]
