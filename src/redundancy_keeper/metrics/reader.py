"""Redundancy series readers."""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Protocol

import requests

from ..core.exceptions import MetricQueryError
from ..core.logging import get_logger
from .series import ClusterSeries, MetricSeries

LOGGER = get_logger(__name__)


class MetricReader(Protocol):
    def query_redundancy_series(
        self,
        service_name: str,
        cluster_name: str,
        metric_name: str,
        benchmark: float,
        from_unix: int,
        to_unix: int,
        trim_seconds: int,
    ) -> MetricSeries: ...


class PrometheusMetricReader:
    """Reads redundancy series from a Prometheus-compatible ``query_range`` API.

    Works against Prometheus and the VictoriaMetrics ``/prometheus`` select path.
    The query template is formatted with ``benchmark``, ``metric``, ``service``
    and ``cluster`` and must yield one series per ``cluster_name`` label.
    """

    def __init__(
        self,
        base_url: str,
        query_template: str,
        *,
        step_seconds: int = 1,
        timeout: float = 5.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.query_template = query_template
        self.step_seconds = step_seconds
        self.timeout = timeout
        self._session = session or requests.Session()

    def close(self) -> None:
        self._session.close()

    def build_query(self, service_name: str, cluster_name: str, metric_name: str, benchmark: float) -> str:
        return self.query_template.format(
            benchmark=benchmark,
            metric=metric_name,
            service=service_name,
            cluster=cluster_name,
        )

    def query_redundancy_series(
        self,
        service_name: str,
        cluster_name: str,
        metric_name: str,
        benchmark: float,
        from_unix: int,
        to_unix: int,
        trim_seconds: int,
    ) -> MetricSeries:
        params = {
            "query": self.build_query(service_name, cluster_name, metric_name, benchmark),
            "start": from_unix,
            "end": to_unix,
            "step": f"{self.step_seconds}s",
        }
        LOGGER.debug("Querying redundancy for %s/%s over [%s, %s]", service_name, cluster_name, from_unix, to_unix)
        try:
            response = self._session.get(
                f"{self.base_url}/api/v1/query_range",
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
            body = response.json()
        except (requests.RequestException, ValueError) as exc:
            raise MetricQueryError(f"redundancy query for {service_name}/{cluster_name} failed: {exc}") from exc

        if not isinstance(body, dict):
            raise MetricQueryError(f"unexpected response from redundancy query for {service_name}/{cluster_name}")
        if body.get("status") != "success":
            raise MetricQueryError(
                f"redundancy query for {service_name}/{cluster_name} returned {body.get('status')}: {body.get('error', '')}"
            )

        series = MetricSeries(service_name=service_name, metric_name=metric_name)
        data = body.get("data") or {}
        results = data.get("result", []) if isinstance(data, dict) else None
        if not isinstance(results, list) or not all(isinstance(result, dict) for result in results):
            raise MetricQueryError(f"malformed result for redundancy query of {service_name}/{cluster_name}")
        try:
            for result in results:
                series.clusters.append(self._to_cluster(result, cluster_name, from_unix, to_unix, trim_seconds))
        except (TypeError, ValueError) as exc:
            raise MetricQueryError(f"malformed samples for redundancy query of {service_name}/{cluster_name}: {exc}") from exc
        return series

    @staticmethod
    def _to_cluster(
        result: Dict[str, Any],
        default_cluster: str,
        from_unix: int,
        to_unix: int,
        trim_seconds: int,
    ) -> ClusterSeries:
        labels = result.get("metric")
        if not isinstance(labels, dict):
            labels = {}
        lower = from_unix + trim_seconds
        upper = to_unix - trim_seconds
        values: List[float] = []
        for timestamp, raw in result.get("values") or []:
            if not lower <= float(timestamp) <= upper:
                continue
            try:
                value = float(raw)
            except (TypeError, ValueError):
                continue
            if math.isfinite(value):
                values.append(value)
        return ClusterSeries(cluster_name=labels.get("cluster_name", default_cluster), values=values)
