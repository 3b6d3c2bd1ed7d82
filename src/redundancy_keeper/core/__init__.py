"""Core primitives: logging, errors and background loops."""

from .exceptions import (
    FleetApiError,
    FleetTransportError,
    KeeperError,
    MetricQueryError,
    RuleStoreError,
    TokenIssuerError,
    ValidationError,
)
from .logging import (
    ContextFormatter,
    JsonFormatter,
    configure_logging,
    get_correlation_id,
    get_logger,
    log_with_context,
    new_correlation_id,
)
from .periodic import PeriodicTask

__all__ = [
    "KeeperError",
    "ValidationError",
    "FleetApiError",
    "FleetTransportError",
    "TokenIssuerError",
    "RuleStoreError",
    "MetricQueryError",
    "ContextFormatter",
    "JsonFormatter",
    "configure_logging",
    "get_correlation_id",
    "get_logger",
    "log_with_context",
    "new_correlation_id",
    "PeriodicTask",
]
