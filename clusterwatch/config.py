import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from dotenv import load_dotenv

from .notifications.settings import EmailSettings, SlackSettings, TelegramSettings


class ConfigurationError(Exception):
    """Operator-authored configuration is unusable; the agent must not keep running."""


@dataclass(frozen=True)
class ClusterConfig:
    name: str
    hosts: Tuple[str, ...]
    expected_node_count: int


class Config:
    def __init__(self, config_path: str = "config.yml"):
        load_dotenv()

        self.config_path = Path(config_path)
        self._config = self._load_config()
        self._source_clusters = self._parse_source_clusters()
        self._validate_timezone()

    def _load_config(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, "r") as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Config file {self.config_path} is not valid YAML: {e}") from e

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Config file {self.config_path} must contain a mapping")

        return self._substitute_env_vars(config)

    def _substitute_env_vars(self, config: Any) -> Any:
        if isinstance(config, dict):
            return {k: self._substitute_env_vars(v) for k, v in config.items()}
        elif isinstance(config, list):
            return [self._substitute_env_vars(item) for item in config]
        elif isinstance(config, str):
            pattern = re.compile(r"\$\{([^}]+)}")
            matches = pattern.findall(config)
            result = config
            for var_name in matches:
                var_value = os.getenv(var_name, "")
                result = result.replace(f"${{{var_name}}}", var_value)
            return result
        else:
            return config

    def _parse_source_clusters(self) -> List[ClusterConfig]:
        clusters = []
        seen = set()
        for entry in self.get("source-clusters", []) or []:
            if not isinstance(entry, dict):
                raise ConfigurationError(f"Invalid source cluster entry: {entry!r}")

            name = entry.get("cluster-name")
            hosts = entry.get("hosts") or []
            if not name:
                raise ConfigurationError(f"Source cluster entry without cluster-name: {entry!r}")
            if name in seen:
                raise ConfigurationError(f"Source cluster {name} is configured twice")
            if not hosts:
                raise ConfigurationError(f"Source cluster {name} has no hosts")

            try:
                expected = int(entry.get("expected-node-count", 0))
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Source cluster {name} has an invalid expected-node-count") from e

            seen.add(name)
            clusters.append(
                ClusterConfig(name=name, hosts=tuple(str(h).rstrip("/") for h in hosts), expected_node_count=expected)
            )
        return clusters

    def _validate_timezone(self) -> None:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown TIMEZONE {self.timezone!r}") from e

    def get(self, key: str, default: Any = None) -> Any:
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    @property
    def collect_interval(self) -> int:
        return int(self.get("collect-interval", 60))

    @property
    def request_timeout(self) -> float:
        return float(self.get("request-timeout", 10))

    @property
    def index_prefix(self) -> str:
        return self.get("index-prefix", "clusterwatch")

    @property
    def source_clusters(self) -> List[ClusterConfig]:
        return self._source_clusters

    def get_cluster(self, name: str) -> Optional[ClusterConfig]:
        for cluster in self._source_clusters:
            if cluster.name == name:
                return cluster
        return None

    @property
    def destination_hosts(self) -> List[str]:
        return [str(h).rstrip("/") for h in self.get("destination-hosts", []) or []]

    @property
    def notify_on_node_count_change(self) -> bool:
        return bool(self.get("notify.node-count-change", False))

    @property
    def notify_on_cluster_yellow(self) -> bool:
        return bool(self.get("notify.cluster-yellow", False))

    @property
    def notify_on_cluster_red(self) -> bool:
        return bool(self.get("notify.cluster-red", False))

    @property
    def notify_on_cluster_unavailable(self) -> bool:
        return bool(self.get("notify.cluster-unavailable", False))

    @property
    def notification_channels(self) -> List[str]:
        return [str(name).lower() for name in self.get("notifications", []) or []]

    @property
    def slack_defaults(self) -> SlackSettings:
        return SlackSettings(
            uri=self.get("slack.webhook-uri", ""),
            channel=self.get("slack.channel", ""),
            sender=self.get("slack.sender", ""),
            emoji=self.get("slack.emoji", ""),
        )

    @property
    def email_defaults(self) -> EmailSettings:
        return EmailSettings(
            smtp_server=self.get("email.smtp-server", ""),
            smtp_port=int(self.get("email.smtp-port", 0) or 0),
            smtp_auth_user=self.get("email.smtp-auth-user", ""),
            smtp_auth_password=self.get("email.smtp-auth-password", ""),
            from_address=self.get("email.from-address", ""),
            to_addresses=list(self.get("email.to-addresses", []) or []),
        )

    @property
    def telegram_defaults(self) -> TelegramSettings:
        return TelegramSettings(
            bot_token=self.telegram_bot_token,
            chat_id=self.telegram_chat_id,
            topic_id=self.telegram_topic_id,
        )

    @property
    def telegram_bot_token(self) -> str:
        return os.getenv("TELEGRAM_BOT_TOKEN", "")

    @property
    def telegram_chat_id(self) -> str:
        return os.getenv("TELEGRAM_CHAT_ID", "") or str(self.get("telegram.chat-id", ""))

    @property
    def telegram_topic_id(self) -> int | None:
        topic_id = os.getenv("TELEGRAM_TOPIC_ID", "") or str(self.get("telegram.topic-id", ""))
        if topic_id and topic_id.strip():
            try:
                return int(topic_id.strip())
            except ValueError:
                return None
        return None

    @property
    def delivery_queue_size(self) -> int:
        return int(self.get("delivery.queue-size", 100000))

    @property
    def delivery_retry_delay(self) -> float:
        return float(self.get("delivery.retry-delay", 30))

    @property
    def rules_directory(self) -> str:
        return self.get("rules.directory", "rules")

    @property
    def rules_watch_interval(self) -> float:
        return float(self.get("rules.watch-interval", 5))

    @property
    def rules_strict_reload(self) -> bool:
        return bool(self.get("rules.strict-reload", True))

    @property
    def log_level(self) -> str:
        return self.get("logging.level", "INFO")

    @property
    def log_file(self) -> str | None:
        return self.get("logging.file", "logs/clusterwatch.log")

    @property
    def locale(self) -> str:
        return self.get("locale", "en")

    @property
    def timezone(self) -> str:
        return os.getenv("TIMEZONE", "UTC")
