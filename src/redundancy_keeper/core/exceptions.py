"""Common exception hierarchy used across the redundancy keeper."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class KeeperError(RuntimeError):
    message: str
    code: str = "keeper_error"
    metadata: Dict[str, Any] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.metadata is None:
            self.metadata = {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "metadata": self.metadata}


class ValidationError(KeeperError):
    """Request arguments rejected before anything is sent over the wire."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="validation_error")


class FleetTransportError(KeeperError):
    """Network, timeout or decoding failure talking to the orchestration API."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="fleet_transport_error")


class FleetApiError(KeeperError):
    """The orchestration API answered with a non-success envelope code."""

    def __init__(self, status_code: Any, msg: str) -> None:
        super().__init__(
            f"http code:{status_code} | msg:{msg}",
            code="fleet_api_error",
            metadata={"status_code": status_code, "msg": msg},
        )
        self.status_code = status_code
        self.msg = msg


class TokenIssuerError(KeeperError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="token_issuer_error")


class RuleStoreError(KeeperError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="rule_store_error")


class MetricQueryError(KeeperError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="metric_query_error")


__all__ = [
    "KeeperError",
    "ValidationError",
    "FleetTransportError",
    "FleetApiError",
    "TokenIssuerError",
    "RuleStoreError",
    "MetricQueryError",
]
