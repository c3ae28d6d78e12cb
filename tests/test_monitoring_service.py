import json

import pytest

from clusterwatch.config import ClusterConfig
from clusterwatch.elastic import ClusterHealthMonitor, StatsCollector
from clusterwatch.monitoring_service import MonitoringService
from clusterwatch.rules import RulesWatcher
from clusterwatch.transport import FailoverError

PROD = ClusterConfig(name="prod", hosts=("http://es-1:9200",), expected_node_count=2)
DOWN = ClusterConfig(name="down", hosts=("http://gone:9200",), expected_node_count=1)


class FakeConfig:
    source_clusters = [DOWN, PROD]


class ScriptedDispatcher:
    def __init__(self):
        self.calls = []

    async def request(self, hosts, method, path, body=None):
        self.calls.append((hosts[0], path))
        if hosts[0] == "http://gone:9200":
            raise FailoverError(path)
        if path == "_cat/nodes":
            return b"10.0.0.1 node-1\n10.0.0.2 client-1\n"
        if path == "_cluster/health":
            return json.dumps({"cluster_name": "prod", "status": "green", "number_of_nodes": 2}).encode()
        if path == "_nodes/stats":
            return json.dumps({"cluster_name": "prod", "nodes": {"a": {"name": "node-1"}}}).encode()
        if path == "_nodes/client-1/stats":
            return json.dumps({"cluster_name": "prod", "nodes": {"b": {"name": "client-1"}}}).encode()
        raise FailoverError(path)


class RecordingQueue:
    def __init__(self):
        self.doc_types = []

    def enqueue(self, doc_type, body):
        self.doc_types.append(doc_type)
        return True


class FakeNotifier:
    def __init__(self):
        self.states = []

    async def notify_node_count_change(self, change):
        pass

    async def notify_cluster_state(self, change):
        self.states.append(change)


class FakeRuleEngine:
    def __init__(self):
        self.runs = 0

    async def run_due_rules(self):
        self.runs += 1


@pytest.mark.asyncio
async def test_collection_cycle_order_and_outcome():
    dispatcher = ScriptedDispatcher()
    queue = RecordingQueue()
    notifier = FakeNotifier()
    monitor = ClusterHealthMonitor([DOWN, PROD], notifier, notify_unavailable=True)
    rules = FakeRuleEngine()
    service = MonitoringService(FakeConfig(), StatsCollector(dispatcher, queue), monitor, rules)

    await service.perform_collection_cycle()

    prod_paths = [path for host, path in dispatcher.calls if host == "http://es-1:9200"]
    assert prod_paths == ["_cat/nodes", "_cluster/health", "_nodes/stats", "_nodes/client-1/stats"]
    assert queue.doc_types.count("cluster_stats") == 1
    assert queue.doc_types.count("os_stats") == 2
    assert [(s.cluster_name, s.status) for s in notifier.states] == [("down", "unavailable")]
    assert monitor.state("prod").status == "green"
    assert rules.runs == 1


@pytest.mark.asyncio
async def test_watcher_flags_changes(tmp_path):
    flagged = []
    watcher = RulesWatcher(tmp_path, lambda: flagged.append(True), interval=3600)
    await watcher.start()

    assert watcher.poll() is False
    (tmp_path / "new-rule.json").write_text("{}")
    assert watcher.poll() is True
    assert watcher.poll() is False

    await watcher.stop()
    assert flagged == [True]
