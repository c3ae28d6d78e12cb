import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Sequence

from .nodes import NodeRegistry
from ..delivery import DeliveryQueue
from ..transport import FailoverDispatcher, FailoverError
from ..utils.logger import get_logger
from ..utils.time import epoch_millis, utc_now

# (section in the _nodes/stats payload, document type it is indexed under)
NODE_STAT_SECTIONS = (
    ("indices", "index_stats"),
    ("os", "os_stats"),
    ("fs", "fs_stats"),
    ("jvm", "jvm_stats"),
    ("process", "process_stats"),
    ("thread_pool", "thread_stats"),
)


class ResponseParseError(Exception):
    pass


@dataclass
class ClusterHealthSnapshot:
    cluster_name: str
    status: str
    number_of_nodes: int
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)


def _decode(body: bytes, what: str) -> Any:
    try:
        return json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise ResponseParseError(f"Could not decode {what} response: {e}") from e


def parse_cluster_health(body: bytes) -> ClusterHealthSnapshot:
    data = _decode(body, "_cluster/health")
    if not isinstance(data, dict):
        raise ResponseParseError("_cluster/health response is not an object")

    try:
        number_of_nodes = int(data.get("number_of_nodes", 0))
    except (TypeError, ValueError) as e:
        raise ResponseParseError(f"Invalid number_of_nodes: {data.get('number_of_nodes')!r}") from e

    return ClusterHealthSnapshot(
        cluster_name=data.get("cluster_name", ""),
        status=str(data.get("status", "")),
        number_of_nodes=number_of_nodes,
        raw=data,
    )


class StatsCollector:
    def __init__(
        self,
        dispatcher: FailoverDispatcher,
        delivery_queue: DeliveryQueue,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.dispatcher = dispatcher
        self.delivery_queue = delivery_queue
        self.clock = clock
        self.logger = get_logger(__name__)

    async def discover_nodes(self, hosts: Sequence[str]) -> NodeRegistry:
        try:
            body = await self.dispatcher.request(hosts, "GET", "_cat/nodes")
        except FailoverError as e:
            self.logger.error(f"Node discovery failed: {e}")
            return NodeRegistry()

        registry = NodeRegistry.from_cat_nodes(body.decode("utf-8", errors="replace"))
        self.logger.info(f"Discovered {len(registry)} nodes")
        return registry

    async def collect_cluster_health(self, hosts: Sequence[str]) -> ClusterHealthSnapshot | None:
        """Fetch and index cluster health.

        Raises ``FailoverError`` when no host answers so the caller can treat
        the cluster as unavailable; returns None on an unreadable answer.
        """
        body = await self.dispatcher.request(hosts, "GET", "_cluster/health")

        try:
            snapshot = parse_cluster_health(body)
        except ResponseParseError as e:
            self.logger.error(f"Skipping cluster health check: {e}")
            return None

        self._index_document(
            {"timestamp": epoch_millis(self.clock()), "cluster_stats": snapshot.raw},
            "cluster_stats",
        )
        return snapshot

    async def collect_node_stats(self, hosts: Sequence[str], registry: NodeRegistry) -> None:
        try:
            body = await self.dispatcher.request(hosts, "GET", "_nodes/stats")
        except FailoverError as e:
            self.logger.error(f"Node stats collection failed: {e}")
            return

        try:
            processed = self.process_node_stats(body, registry)
        except ResponseParseError as e:
            self.logger.error(f"Skipping node stats: {e}")
            return

        self.logger.info(f"Collected stats for {processed} nodes")

    async def reconcile_unreached_nodes(self, hosts: Sequence[str], registry: NodeRegistry) -> None:
        # Client-only nodes are missing from _nodes/stats unless the answering
        # host is the node itself, so each one is asked for host by host.
        for node in registry.unprocessed():
            for host in hosts:
                try:
                    body = await self.dispatcher.request([host], "GET", f"_nodes/{node.name}/stats")
                except FailoverError:
                    continue

                try:
                    self.process_node_stats(body, registry)
                except ResponseParseError as e:
                    self.logger.warning(f"Catch-up stats for {node.name} from {host} unreadable: {e}")
                    continue

                if registry.is_processed(node.name):
                    break

            if not registry.is_processed(node.name):
                self.logger.warning(f"Could not collect stats for node {node.name} from any host")

    def process_node_stats(self, body: bytes, registry: NodeRegistry) -> int:
        data = _decode(body, "_nodes/stats")
        if not isinstance(data, dict):
            raise ResponseParseError("_nodes/stats response is not an object")

        cluster_name = data.get("cluster_name", "")
        nodes = data.get("nodes") or {}
        if not isinstance(nodes, dict):
            raise ResponseParseError("_nodes/stats 'nodes' is not an object")

        count = 0
        for node in nodes.values():
            if not isinstance(node, dict):
                continue

            header = {
                "timestamp": node.get("timestamp", 0),
                "node_name": node.get("name", ""),
                "cluster_name": cluster_name,
            }
            for section, doc_type in NODE_STAT_SECTIONS:
                document = dict(header)
                document[doc_type] = node.get(section)
                self._index_document(document, doc_type)

            registry.mark_processed(header["node_name"])
            count += 1
        return count

    def _index_document(self, document: Dict[str, Any], doc_type: str) -> None:
        self.delivery_queue.enqueue(doc_type, json.dumps(document).encode("utf-8"))
