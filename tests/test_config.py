import pytest

from clusterwatch.config import ClusterConfig, Config, ConfigurationError

CONFIG = """
collect-interval: 30
index-prefix: metrics
source-clusters:
  - cluster-name: prod
    expected-node-count: 3
    hosts:
      - http://es-1:9200/
      - http://es-2:9200
destination-hosts:
  - http://dest:9200
notify:
  node-count-change: true
  cluster-red: true
notifications: [Slack, email]
slack:
  webhook-uri: ${TEST_SLACK_URI}
  channel: "#alerts"
email:
  smtp-server: smtp.example.com
  smtp-port: 587
  to-addresses: [ops@example.com]
rules:
  strict-reload: false
"""


def write_config(tmp_path, text=CONFIG):
    path = tmp_path / "config.yml"
    path.write_text(text)
    return str(path)


def test_load_config(tmp_path, monkeypatch):
    monkeypatch.setenv("TEST_SLACK_URI", "https://hooks.example/abc")
    config = Config(write_config(tmp_path))

    assert config.collect_interval == 30
    assert config.index_prefix == "metrics"
    assert config.source_clusters == [
        ClusterConfig(name="prod", hosts=("http://es-1:9200", "http://es-2:9200"), expected_node_count=3)
    ]
    assert config.get_cluster("prod").expected_node_count == 3
    assert config.get_cluster("staging") is None
    assert config.destination_hosts == ["http://dest:9200"]
    assert config.notify_on_node_count_change is True
    assert config.notify_on_cluster_yellow is False
    assert config.notify_on_cluster_red is True
    assert config.notification_channels == ["slack", "email"]
    assert config.slack_defaults.uri == "https://hooks.example/abc"
    assert config.slack_defaults.channel == "#alerts"
    assert config.email_defaults.smtp_port == 587
    assert config.email_defaults.to_addresses == ["ops@example.com"]
    assert config.rules_strict_reload is False


def test_defaults(tmp_path):
    config = Config(write_config(tmp_path, "source-clusters: []\n"))

    assert config.collect_interval == 60
    assert config.request_timeout == 10.0
    assert config.delivery_queue_size == 100000
    assert config.delivery_retry_delay == 30.0
    assert config.rules_directory == "rules"
    assert config.rules_strict_reload is True
    assert config.source_clusters == []


def test_missing_file_is_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError):
        Config(str(tmp_path / "absent.yml"))


def test_cluster_without_hosts_rejected(tmp_path):
    with pytest.raises(ConfigurationError):
        Config(write_config(tmp_path, "source-clusters:\n  - cluster-name: prod\n"))


def test_duplicate_cluster_rejected(tmp_path):
    text = (
        "source-clusters:\n"
        "  - {cluster-name: prod, hosts: [http://a]}\n"
        "  - {cluster-name: prod, hosts: [http://b]}\n"
    )
    with pytest.raises(ConfigurationError):
        Config(write_config(tmp_path, text))


def test_unknown_timezone_rejected(tmp_path, monkeypatch):
    monkeypatch.setenv("TIMEZONE", "Mars/Olympus_Mons")

    with pytest.raises(ConfigurationError):
        Config(write_config(tmp_path, "source-clusters: []\n"))
