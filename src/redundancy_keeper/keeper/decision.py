"""Redundancy-based scaling decision.

The arithmetic intentionally mirrors the fixed-point behaviour existing
deployments were tuned against:

* the representative redundancy is the lower-middle element of the sorted
  samples, never an average of the two middle values;
* the redundancy percentage is truncated before it is compared with the band;
* the band midpoint is an integer division of the percentage sum;
* the expected instance count is truncated toward zero.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from ..rules.models import PredictRule

MAX_STEP = 30


class ScaleDirection(str, Enum):
    EXPAND = "expand"
    SHRINK = "shrink"
    NONE = "none"


@dataclass(frozen=True)
class ScalingDecision:
    cluster: str
    direction: ScaleDirection
    instance_delta: int = 0
    reason: str = ""
    redundancy: Optional[float] = None

    @property
    def should_scale(self) -> bool:
        return self.direction is not ScaleDirection.NONE and self.instance_delta > 0


def median(values: Sequence[float]) -> float:
    """Lower-middle element of the sorted values."""
    if not values:
        raise ValueError("median of an empty sequence")
    ordered = sorted(values)
    return ordered[(len(ordered) - 1) // 2]


def decide(
    rule: PredictRule,
    samples: Sequence[float],
    current_count: int,
    *,
    max_step: int = MAX_STEP,
) -> ScalingDecision:
    cluster = rule.cluster_name
    redundancy = median(samples)

    def _none(reason: str) -> ScalingDecision:
        return ScalingDecision(cluster, ScaleDirection.NONE, 0, reason, redundancy)

    percent = int(redundancy * 100)
    if rule.min_redundancy < percent < rule.max_redundancy:
        return _none("redundancy within band")
    if redundancy <= 0:
        return _none("non-positive redundancy")

    mid_redundancy = ((rule.max_redundancy + rule.min_redundancy) // 2) / 100.0
    expect_count = int(mid_redundancy / redundancy * current_count)
    diff = expect_count - current_count

    if diff > 0:
        delta = math.ceil(diff * rule.execute_ratio / 100.0)
        if delta == 0:
            return _none("damped delta is zero")
        if current_count + delta > rule.max_instance_count:
            delta = rule.max_instance_count - current_count
        delta = min(delta, max_step)
        if delta <= 0:
            return _none("at max instance count")
        return ScalingDecision(cluster, ScaleDirection.EXPAND, delta, "expanding toward band midpoint", redundancy)

    if diff < 0:
        delta = math.ceil(abs(diff) * rule.execute_ratio / 100.0)
        if delta == 0:
            return _none("damped delta is zero")
        if current_count - delta < rule.min_instance_count:
            delta = current_count - rule.min_instance_count
        delta = min(delta, max_step)
        if delta <= 0:
            return _none("at min instance count")
        return ScalingDecision(cluster, ScaleDirection.SHRINK, delta, "shrinking toward band midpoint", redundancy)

    return _none("delta is zero")
