"""Pydantic schemas defining configuration contracts."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REDUNDANCY_QUERY = (
    "{benchmark} / avg by (cluster_name) ({metric}{{service_name=\"{service}\",cluster_name=\"{cluster}\"}})"
)


class SchedulerConfig(BaseModel):
    run_interval_seconds: float = Field(default=60.0, gt=0)
    rule_concurrency: int = Field(default=10, ge=1)


class EvaluationConfig(BaseModel):
    lookback_seconds: int = Field(default=60, gt=0)
    metric_send_delay_seconds: int = Field(default=5, ge=0)
    sample_margin_seconds: int = Field(default=30, ge=0)
    trim_seconds: int = Field(default=5, ge=0)
    max_step: int = Field(default=30, ge=1)

    @property
    def min_sample_count(self) -> int:
        return self.lookback_seconds - self.sample_margin_seconds

    @model_validator(mode="after")
    def _check_window(self) -> "EvaluationConfig":
        if self.sample_margin_seconds >= self.lookback_seconds:
            raise ValueError("sample_margin_seconds must be smaller than lookback_seconds")
        if self.metric_send_delay_seconds >= self.lookback_seconds:
            raise ValueError("metric_send_delay_seconds must be smaller than lookback_seconds")
        return self


class FleetConfig(BaseModel):
    server_address: str
    timeout_seconds: float = Field(default=5.0, gt=0)
    token: Optional[str] = None


class IdentityCacheConfig(BaseModel):
    capacity: int = Field(default=1000, ge=1)
    flush_interval_seconds: float = Field(default=180.0, gt=0)


class MetricReaderConfig(BaseModel):
    url: Optional[str] = None
    step_seconds: int = Field(default=1, ge=1)
    timeout_seconds: float = Field(default=5.0, gt=0)
    query_template: str = DEFAULT_REDUNDANCY_QUERY


class RulesConfig(BaseModel):
    path: Optional[str] = None


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_logs: bool = False


class KeeperConfig(BaseModel):
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    evaluation: EvaluationConfig = Field(default_factory=EvaluationConfig)
    fleet: FleetConfig
    identity_cache: IdentityCacheConfig = Field(default_factory=IdentityCacheConfig)
    metric_reader: MetricReaderConfig = Field(default_factory=MetricReaderConfig)
    rules: RulesConfig = Field(default_factory=RulesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics_port: Optional[int] = None

    model_config = {
        "extra": "forbid",
        "validate_assignment": True,
    }


class KeeperSettings(BaseSettings):
    """Process environment, read with the ``REDUNDANCY_KEEPER_`` prefix."""

    config: Optional[str] = None
    fleet_token: Optional[str] = None
    log_level: Optional[str] = None

    model_config = SettingsConfigDict(env_prefix="REDUNDANCY_KEEPER_", env_file=".env", extra="ignore")
