from typing import TYPE_CHECKING

from .config import ClusterConfig, Config, ConfigurationError
from .elastic import ClusterHealthMonitor, StatsCollector
from .transport import FailoverError
from .utils.logger import get_logger

if TYPE_CHECKING:
    from .rules import RuleEngine


class MonitoringService:
    def __init__(
        self,
        config: Config,
        stats_collector: StatsCollector,
        health_monitor: ClusterHealthMonitor,
        rule_engine: "RuleEngine",
    ):
        self.config = config
        self.stats_collector = stats_collector
        self.health_monitor = health_monitor
        self.rule_engine = rule_engine
        self.logger = get_logger(__name__)

    async def perform_collection_cycle(self) -> None:
        self.logger.info("Starting collection cycle")

        for cluster in self.config.source_clusters:
            try:
                await self.collect_cluster(cluster)
            except ConfigurationError:
                raise
            except Exception as e:
                self.logger.error(f"Error collecting cluster {cluster.name}: {e}", exc_info=True)

        await self.rule_engine.run_due_rules()

        self.logger.info("Collection cycle completed")

    async def collect_cluster(self, cluster: ClusterConfig) -> None:
        # A fresh registry per cycle; nodes seen last cycle are forgotten.
        registry = await self.stats_collector.discover_nodes(cluster.hosts)

        try:
            snapshot = await self.stats_collector.collect_cluster_health(cluster.hosts)
        except FailoverError as e:
            self.logger.error(f"{cluster.name}: cluster health unavailable: {e}")
            await self.health_monitor.check_unavailable(cluster)
        else:
            if snapshot is not None:
                self.logger.info(
                    f"{cluster.name}: status={snapshot.status}, nodes={snapshot.number_of_nodes}"
                    f"/{cluster.expected_node_count}"
                )
                await self.health_monitor.check(cluster, snapshot)

        await self.stats_collector.collect_node_stats(cluster.hosts, registry)
        await self.stats_collector.reconcile_unreached_nodes(cluster.hosts, registry)
