from .config import Config, ClusterConfig, ConfigurationError
from .transport import RequestExecutor, FailoverDispatcher, FailoverError
from .delivery import DeliveryQueue
from .elastic import NodeRegistry, StatsCollector, ClusterHealthMonitor
from .notifications import NotificationDispatcher
from .rules import RuleEngine, RulesWatcher
from .monitoring_service import MonitoringService

__all__ = [
    "Config",
    "ClusterConfig",
    "ConfigurationError",
    "RequestExecutor",
    "FailoverDispatcher",
    "FailoverError",
    "DeliveryQueue",
    "NodeRegistry",
    "StatsCollector",
    "ClusterHealthMonitor",
    "NotificationDispatcher",
    "RuleEngine",
    "RulesWatcher",
    "MonitoringService",
]
