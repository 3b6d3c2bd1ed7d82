"""Configuration loading utilities.

Responsibility: Loads and validates keeper configuration from YAML with
``key=value`` override support and environment settings.
"""

from .loader import apply_override, dump_config, load_config
from .schema import (
    EvaluationConfig,
    FleetConfig,
    IdentityCacheConfig,
    KeeperConfig,
    KeeperSettings,
    MetricReaderConfig,
    SchedulerConfig,
)

__all__ = [
    "apply_override",
    "load_config",
    "dump_config",
    "KeeperConfig",
    "KeeperSettings",
    "SchedulerConfig",
    "EvaluationConfig",
    "FleetConfig",
    "IdentityCacheConfig",
    "MetricReaderConfig",
]
