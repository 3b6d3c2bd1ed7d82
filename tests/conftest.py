import sys
from pathlib import Path
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from redundancy_keeper.metrics.series import ClusterSeries, MetricSeries  # noqa: E402
from redundancy_keeper.rules.models import PredictRule  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "concurrency: marks tests that exercise threads")


def build_rule(**overrides: Any) -> PredictRule:
    fields: Dict[str, Any] = {
        "service_name": "checkout",
        "cluster_name": "checkout-main",
        "metric_name": "http_requests_qps",
        "benchmark_qps": 100,
        "min_redundancy": 80,
        "max_redundancy": 120,
        "execute_ratio": 50,
        "min_instance_count": 1,
        "max_instance_count": 100,
        "status": "enabled",
    }
    fields.update(overrides)
    return PredictRule(**fields)


def build_series(values, cluster_name: str = "checkout-main") -> MetricSeries:
    return MetricSeries(
        service_name="checkout",
        metric_name="http_requests_qps",
        clusters=[ClusterSeries(cluster_name=cluster_name, values=list(values))],
    )


@pytest.fixture
def make_rule():
    return build_rule


@pytest.fixture
def make_series():
    return build_series


@pytest.fixture
def fleet_client():
    """Fleet client double that is schedulable and reports ten instances."""
    client = MagicMock()
    client.is_schedulable.return_value = True
    client.instance_count.return_value = 10
    return client


@pytest.fixture
def metric_reader():
    reader = MagicMock()
    reader.query_redundancy_series.return_value = build_series([1.0] * 40)
    return reader
