"""Scaling rule model."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RuleStatus(str, Enum):
    ENABLED = "enabled"
    DISABLED = "disabled"


class PredictRule(BaseModel):
    """Per-service redundancy rule. Read-only to the keeper."""

    service_name: str
    cluster_name: str
    metric_name: str
    benchmark_qps: int = Field(gt=0)
    min_redundancy: int
    max_redundancy: int
    execute_ratio: int = Field(ge=0, le=100)
    min_instance_count: int = Field(ge=0)
    max_instance_count: int = Field(ge=0)
    status: RuleStatus = RuleStatus.ENABLED

    model_config = ConfigDict(frozen=True, use_enum_values=False)

    @model_validator(mode="after")
    def _check_bounds(self) -> "PredictRule":
        if self.min_redundancy > self.max_redundancy:
            raise ValueError("min_redundancy must not exceed max_redundancy")
        if self.min_instance_count > self.max_instance_count:
            raise ValueError("min_instance_count must not exceed max_instance_count")
        return self

    @property
    def enabled(self) -> bool:
        return self.status == RuleStatus.ENABLED

    def identity(self) -> dict:
        return {"service": self.service_name, "cluster": self.cluster_name}
