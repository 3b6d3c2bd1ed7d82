"""Metric series returned by a redundancy query."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List


@dataclass
class ClusterSeries:
    cluster_name: str
    values: List[float] = field(default_factory=list)


@dataclass
class MetricSeries:
    service_name: str
    metric_name: str
    clusters: List[ClusterSeries] = field(default_factory=list)

    def for_cluster(self, cluster_name: str) -> Iterator[ClusterSeries]:
        return (cluster for cluster in self.clusters if cluster.cluster_name == cluster_name)
