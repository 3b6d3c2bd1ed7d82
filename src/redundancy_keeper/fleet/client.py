"""Typed client for the fleet orchestration API."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from ..core.exceptions import FleetApiError, FleetTransportError, ValidationError
from ..core.logging import get_logger, log_with_context
from .auth import BearerTokenAuth, TokenIssuer

LOGGER = get_logger(__name__)

SUCCESS_CODE = 200
DEFAULT_TIMEOUT_SECONDS = 5.0

SCHEDULING_PATH = "/api/v1/schedulx/service/scheduling"
INSTANCE_COUNT_PATH = "/api/v1/schedulx/instance/count"
EXPAND_PATH = "/api/v1/schedulx/service/expand"
SHRINK_PATH = "/api/v1/schedulx/service/shrink"
SERVICE_BY_IP_PATH = "/api/v1/schedulx/instance/service"


@dataclass(frozen=True)
class ServiceIdentity:
    """Service and cluster an instance address belongs to."""

    service_name: str
    cluster_name: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "ServiceIdentity":
        if not isinstance(payload, dict):
            raise FleetTransportError(f"unexpected service identity payload: {payload!r}")
        return cls(
            service_name=str(payload.get("service_name", "")),
            cluster_name=str(payload.get("service_cluster_name") or payload.get("service_cluster", "")),
            raw=dict(payload),
        )


def validate_names(service_name: str, cluster_name: str) -> None:
    if not service_name:
        raise ValidationError("service name must not be empty")
    if not cluster_name:
        raise ValidationError("cluster name must not be empty")


def validate_params(service_name: str, cluster_name: str, count: int) -> None:
    validate_names(service_name, cluster_name)
    if count <= 0:
        raise ValidationError("instance count must be greater than 0")


class FleetClient:
    """Wrapper around the orchestration endpoints used by the keeper.

    Every request is authenticated through ``BearerTokenAuth`` and bounded by a
    fixed timeout. Nothing is retried; a failure is the caller's failure for the
    current cycle.
    """

    def __init__(
        self,
        server_address: str,
        token_issuer: TokenIssuer,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.server_address = server_address.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.auth = BearerTokenAuth(token_issuer)

    def close(self) -> None:
        """Close the underlying HTTP session."""

        self._session.close()

    def is_schedulable(self, service_name: str, cluster_name: str) -> bool:
        """True when no other scaling operation is pending for the cluster."""
        validate_names(service_name, cluster_name)
        data = self._get(
            SCHEDULING_PATH,
            {"service_name": service_name, "service_cluster_name": cluster_name},
        )
        return not bool(self._mapping(data, SCHEDULING_PATH).get("scheduling", False))

    def instance_count(self, service_name: str, cluster_name: str) -> int:
        """Running instances of the cluster, summed over its sub-clusters."""
        validate_names(service_name, cluster_name)
        data = self._get(
            INSTANCE_COUNT_PATH,
            {"service_name": service_name, "service_cluster_name": cluster_name},
        )
        clusters = self._mapping(data, INSTANCE_COUNT_PATH).get("service_cluster_list") or []
        if not isinstance(clusters, list):
            raise FleetTransportError(f"unexpected service_cluster_list from {INSTANCE_COUNT_PATH}: {clusters!r}")
        try:
            return sum(int(self._mapping(item, INSTANCE_COUNT_PATH).get("instance_count") or 0) for item in clusters)
        except (TypeError, ValueError) as exc:
            raise FleetTransportError(f"invalid instance_count from {INSTANCE_COUNT_PATH}: {exc}") from exc

    def expand(self, service_name: str, cluster_name: str, count: int) -> None:
        validate_params(service_name, cluster_name, count)
        self._get(EXPAND_PATH, self._scale_params(service_name, cluster_name, count))
        log_with_context(
            LOGGER, logging.INFO, "service expanded",
            service_name=service_name, service_cluster=cluster_name, count=count,
        )

    def shrink(self, service_name: str, cluster_name: str, count: int) -> None:
        validate_params(service_name, cluster_name, count)
        self._get(SHRINK_PATH, self._scale_params(service_name, cluster_name, count))
        log_with_context(
            LOGGER, logging.INFO, "service shrunk",
            service_name=service_name, service_cluster=cluster_name, count=count,
        )

    def service_by_identity(self, identity: str) -> ServiceIdentity:
        """Resolve an instance's inner IP to the service it runs."""
        if not identity:
            raise ValidationError("identity must not be empty")
        data = self._get(SERVICE_BY_IP_PATH, {"ip_inner": identity})
        return ServiceIdentity.from_payload(data)

    @staticmethod
    def _mapping(data: Any, path: str) -> Dict[str, Any]:
        """``data`` of a success envelope as a dict; null counts as empty."""
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise FleetTransportError(f"unexpected data payload from {path}: {data!r}")
        return data

    @staticmethod
    def _scale_params(service_name: str, cluster_name: str, count: int) -> Dict[str, Any]:
        return {
            "service_name": service_name,
            "service_cluster": cluster_name,
            "count": count,
            "exec_type": "auto",
        }

    def _get(self, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.server_address}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise FleetTransportError(f"request to {path} failed: {exc}") from exc
        try:
            body = response.json()
        except ValueError as exc:
            raise FleetTransportError(f"invalid JSON from {path}: {exc}") from exc

        if not isinstance(body, dict):
            raise FleetTransportError(f"unexpected response envelope from {path}")
        code = body.get("code")
        if code != SUCCESS_CODE:
            raise FleetApiError(code, str(body.get("msg", "")))
        return body.get("data")
