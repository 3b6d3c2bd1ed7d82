"""Prometheus metrics export utilities.

This module provides a centralized registry for Prometheus metrics
and helper functions to record standard metrics.
"""

from __future__ import annotations

from prometheus_client import Counter, start_http_server

# --- Evaluation Metrics ---

EVALUATIONS_TOTAL = Counter(
    "redundancy_keeper_evaluations_total",
    "Rule evaluations by outcome",
    ["outcome"],  # scaled, skipped, failed
)

SCALE_ACTIONS_TOTAL = Counter(
    "redundancy_keeper_scale_actions_total",
    "Expand/shrink calls issued",
    ["direction"],
)

SCALED_INSTANCES_TOTAL = Counter(
    "redundancy_keeper_scaled_instances_total",
    "Instances requested by expand/shrink calls",
    ["direction"],
)

RULE_LISTING_FAILURES = Counter(
    "redundancy_keeper_rule_listing_failures_total",
    "Ticks aborted because the rule store could not be read",
)

# --- Identity Cache Metrics ---

IDENTITY_LOOKUPS_TOTAL = Counter(
    "redundancy_keeper_identity_cache_lookups_total",
    "Identity cache lookups by result",
    ["result"],  # hit, miss, error
)


class MetricsRegistry:
    """Central registry for application metrics."""

    @staticmethod
    def record_evaluation(outcome: str) -> None:
        EVALUATIONS_TOTAL.labels(outcome=outcome).inc()

    @staticmethod
    def record_scale_action(direction: str, count: int) -> None:
        SCALE_ACTIONS_TOTAL.labels(direction=direction).inc()
        SCALED_INSTANCES_TOTAL.labels(direction=direction).inc(count)

    @staticmethod
    def record_rule_listing_failure() -> None:
        RULE_LISTING_FAILURES.inc()

    @staticmethod
    def record_identity_lookup(result: str) -> None:
        IDENTITY_LOOKUPS_TOTAL.labels(result=result).inc()

    @staticmethod
    def start_server(port: int = 9090) -> None:
        """Start a standalone Prometheus metrics server."""
        start_http_server(port)
