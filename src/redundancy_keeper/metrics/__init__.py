"""Metric series and the readers that produce them."""

from .reader import MetricReader, PrometheusMetricReader
from .series import ClusterSeries, MetricSeries

__all__ = ["ClusterSeries", "MetricSeries", "MetricReader", "PrometheusMetricReader"]
