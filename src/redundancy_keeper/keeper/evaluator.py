"""Per-rule redundancy evaluation."""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from ..config.schema import EvaluationConfig
from ..core.logging import get_logger, log_with_context
from ..fleet.client import FleetClient
from ..metrics.reader import MetricReader
from ..rules.models import PredictRule
from ..utils.metrics import MetricsRegistry
from .decision import ScaleDirection, ScalingDecision, decide

LOGGER = get_logger(__name__)


class RedundancyEvaluator:
    """Decides for one rule whether to scale, and issues the call.

    Steps run strictly in order: metric query, scheduling-eligibility check,
    instance count, decision, scale call. Any failure propagates to the caller
    and ends the rule's evaluation for this cycle.
    """

    def __init__(
        self,
        metric_reader: MetricReader,
        fleet_client: FleetClient,
        settings: Optional[EvaluationConfig] = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.metric_reader = metric_reader
        self.fleet_client = fleet_client
        self.settings = settings or EvaluationConfig()
        self._clock = clock

    def evaluate(self, rule: PredictRule) -> List[ScalingDecision]:
        """Evaluate ``rule`` once. Returns the decisions taken, empty when nothing ran."""
        settings = self.settings
        service, cluster = rule.service_name, rule.cluster_name
        now = int(self._clock())

        series = self.metric_reader.query_redundancy_series(
            service,
            cluster,
            rule.metric_name,
            float(rule.benchmark_qps),
            now - settings.lookback_seconds,
            now - settings.metric_send_delay_seconds,
            settings.trim_seconds,
        )

        if not self.fleet_client.is_schedulable(service, cluster):
            log_with_context(LOGGER, logging.DEBUG, "scaling already pending, skipping", service=service, cluster=cluster)
            return []

        current_count = self.fleet_client.instance_count(service, cluster)

        decisions: List[ScalingDecision] = []
        for cluster_series in series.for_cluster(cluster):
            if len(cluster_series.values) < settings.min_sample_count:
                log_with_context(
                    LOGGER, logging.DEBUG, "not enough samples, skipping",
                    service=service, cluster=cluster,
                    samples=len(cluster_series.values), required=settings.min_sample_count,
                )
                continue

            decision = decide(rule, cluster_series.values, current_count, max_step=settings.max_step)
            decisions.append(decision)
            if decision.should_scale:
                self._apply(rule, decision)
            else:
                log_with_context(
                    LOGGER, logging.DEBUG, "no scaling needed",
                    service=service, cluster=cluster,
                    redundancy=decision.redundancy, reason=decision.reason,
                )
        return decisions

    def _apply(self, rule: PredictRule, decision: ScalingDecision) -> None:
        log_with_context(
            LOGGER, logging.INFO, "scaling decision",
            service=rule.service_name, cluster=rule.cluster_name,
            direction=decision.direction.value, count=decision.instance_delta,
            redundancy=decision.redundancy,
        )
        if decision.direction is ScaleDirection.EXPAND:
            self.fleet_client.expand(rule.service_name, rule.cluster_name, decision.instance_delta)
        else:
            self.fleet_client.shrink(rule.service_name, rule.cluster_name, decision.instance_delta)
        MetricsRegistry.record_scale_action(decision.direction.value, decision.instance_delta)
