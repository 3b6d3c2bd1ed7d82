"""Application context owning the keeper's long-lived objects."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .config.schema import KeeperConfig
from .core.logging import get_logger
from .fleet.auth import StaticTokenIssuer, TokenIssuer
from .fleet.client import FleetClient
from .fleet.identity_cache import IdentityCache
from .keeper.evaluator import RedundancyEvaluator
from .keeper.scheduler import Scheduler
from .metrics.reader import MetricReader, PrometheusMetricReader
from .rules.store import RuleStore, YamlRuleStore

LOGGER = get_logger(__name__)


@dataclass
class KeeperContext:
    config: KeeperConfig
    fleet_client: FleetClient
    identity_cache: IdentityCache
    evaluator: RedundancyEvaluator
    scheduler: Scheduler
    metric_reader: MetricReader

    @classmethod
    def from_config(
        cls,
        config: KeeperConfig,
        *,
        rule_store: Optional[RuleStore] = None,
        metric_reader: Optional[MetricReader] = None,
        token_issuer: Optional[TokenIssuer] = None,
    ) -> "KeeperContext":
        if rule_store is None:
            if not config.rules.path:
                raise ValueError("rules.path must be set when no rule store is supplied")
            rule_store = YamlRuleStore(config.rules.path)
        if metric_reader is None:
            if not config.metric_reader.url:
                raise ValueError("metric_reader.url must be set when no metric reader is supplied")
            metric_reader = PrometheusMetricReader(
                config.metric_reader.url,
                config.metric_reader.query_template,
                step_seconds=config.metric_reader.step_seconds,
                timeout=config.metric_reader.timeout_seconds,
            )

        fleet_client = FleetClient(
            config.fleet.server_address,
            token_issuer or StaticTokenIssuer(config.fleet.token),
            timeout=config.fleet.timeout_seconds,
        )
        identity_cache = IdentityCache(
            fleet_client.service_by_identity,
            capacity=config.identity_cache.capacity,
            flush_interval=config.identity_cache.flush_interval_seconds,
        )
        evaluator = RedundancyEvaluator(metric_reader, fleet_client, config.evaluation)
        scheduler = Scheduler(
            rule_store,
            evaluator,
            interval=config.scheduler.run_interval_seconds,
            rule_concurrency=config.scheduler.rule_concurrency,
        )
        return cls(
            config=config,
            fleet_client=fleet_client,
            identity_cache=identity_cache,
            evaluator=evaluator,
            scheduler=scheduler,
            metric_reader=metric_reader,
        )

    def start(self) -> None:
        self.identity_cache.start()
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop()
        self.identity_cache.stop()
        self.fleet_client.close()
        close = getattr(self.metric_reader, "close", None)
        if callable(close):
            close()
        LOGGER.info("Keeper context closed")

    def __enter__(self) -> "KeeperContext":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()
