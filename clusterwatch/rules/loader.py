import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from .models import RULE_TYPES, NotificationRule
from .operators import is_known_operator
from ..config import ConfigurationError
from ..notifications import NotificationOverrides
from ..utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = ("rule_name", "rule_type", "cluster_name", "operator", "threshold", "interval")

YAML_SUFFIXES = (".yml", ".yaml")


class RuleLoadError(ConfigurationError):
    def __init__(self, path: Path, reason: str):
        super().__init__(f"Error loading rule file {path}: {reason}")
        self.path = path


def serialize_query(query: Any, path: Path) -> Optional[bytes]:
    if query is None:
        return None
    try:
        return json.dumps(query).encode("utf-8")
    except (TypeError, ValueError) as e:
        # YAML turns unquoted dates and timestamps into objects JSON cannot hold.
        raise RuleLoadError(path, f"query cannot be sent as JSON: {e}") from e


def parse_rule(data: Any, path: Path) -> NotificationRule:
    if not isinstance(data, dict):
        raise RuleLoadError(path, "rule definition must be a mapping")

    missing = [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]
    if missing:
        raise RuleLoadError(path, f"missing field(s): {', '.join(missing)}")

    rule_type = str(data["rule_type"]).lower()
    if rule_type not in RULE_TYPES:
        raise RuleLoadError(path, f"unknown rule_type {data['rule_type']!r}")

    enabled = data.get("enabled", False)
    if not isinstance(enabled, bool):
        raise RuleLoadError(path, f"enabled must be true or false, got {enabled!r}")

    if not is_known_operator(data["operator"]):
        logger.warning(f"Rule {data['rule_name']} uses unknown operator {data['operator']!r}; it will never notify")

    try:
        threshold = int(data["threshold"])
        interval = int(data["interval"])
        notification_interval = int(data.get("notification_interval") or 0)
        overrides = NotificationOverrides.from_dict(data.get("notification_overrides"))
    except (TypeError, ValueError) as e:
        raise RuleLoadError(path, str(e)) from e

    query = data.get("query")

    return NotificationRule(
        name=str(data["rule_name"]),
        rule_type=rule_type,
        cluster_name=str(data["cluster_name"]),
        operator=str(data["operator"]),
        threshold=threshold,
        interval=interval,
        notification_interval=notification_interval,
        notification_message=str(data.get("notification_message") or ""),
        index_name=str(data.get("index_name") or ""),
        document_type=str(data.get("document_type") or ""),
        enabled=enabled,
        query=query,
        query_body=serialize_query(query, path),
        overrides=overrides,
        source_file=path.name,
    )


def load_rule_file(path: Path) -> NotificationRule:
    """Parse one rule file: YAML for ``.yml``/``.yaml``, JSON for everything else."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
    except OSError as e:
        raise RuleLoadError(path, f"could not read file: {e}") from e
    except (yaml.YAMLError, ValueError) as e:
        raise RuleLoadError(path, f"could not parse file: {e}") from e

    return parse_rule(data, path)


def read_rules(
    directory: Path,
    cluster_exists: Callable[[str], bool],
    strict: bool = True,
) -> List[NotificationRule]:
    """Read every rule file in ``directory``.

    With ``strict`` any bad file raises ``RuleLoadError``; otherwise the file
    is skipped with an error in the log.
    """
    directory = Path(directory)
    if not directory.exists():
        logger.info(f"Rules folder {directory} does not exist. No rules are loaded.")
        return []
    if not directory.is_dir():
        raise RuleLoadError(directory, "rules path is not a directory")

    rules: List[NotificationRule] = []
    names: Dict[str, Path] = {}

    for path in sorted(p for p in directory.iterdir() if p.is_file() and not p.name.startswith(".")):
        logger.info(f"Loading notification rule from {path.name}")
        try:
            rule = load_rule_file(path)

            if rule.name in names:
                raise RuleLoadError(path, f"rule name {rule.name} already defined in {names[rule.name].name}")
            if rule.enabled and not cluster_exists(rule.cluster_name):
                raise RuleLoadError(
                    path, f"rule enabled but no cluster configuration could be found for: {rule.cluster_name}"
                )
        except RuleLoadError as e:
            if strict:
                raise
            logger.error(f"Skipping rule file: {e}")
            continue

        names[rule.name] = path
        rules.append(rule)

    return rules
