from .nodes import NodeRecord, NodeRegistry
from .stats import StatsCollector, ClusterHealthSnapshot, ResponseParseError, parse_cluster_health
from .health import ClusterHealthMonitor, ClusterHealthState

__all__ = [
    "NodeRecord",
    "NodeRegistry",
    "StatsCollector",
    "ClusterHealthSnapshot",
    "ResponseParseError",
    "parse_cluster_health",
    "ClusterHealthMonitor",
    "ClusterHealthState",
]
