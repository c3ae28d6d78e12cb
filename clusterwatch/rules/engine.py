import asyncio
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from .loader import read_rules
from .models import NotificationRule
from .operators import compare
from ..config import Config
from ..elastic import ResponseParseError
from ..notifications import NotificationDispatcher, RuleTriggered
from ..transport import FailoverDispatcher, FailoverError
from ..utils.logger import get_logger
from ..utils.time import is_older_than, utc_now


def parse_count_result(body: bytes) -> int:
    try:
        data = json.loads(body)
        return int(data["count"])
    except (ValueError, TypeError, KeyError, UnicodeDecodeError) as e:
        raise ResponseParseError(f"Invalid _count response: {e}") from e


def parse_search_result(body: bytes) -> Tuple[int, bytes]:
    try:
        data = json.loads(body)
        hits = data["hits"]
        total = hits.get("total", 0)
        # Newer clusters report {"value": n, "relation": "eq"}.
        if isinstance(total, dict):
            total = total.get("value", 0)
        documents = hits.get("hits", [])
        return int(total), json.dumps(documents).encode("utf-8")
    except (ValueError, TypeError, KeyError, AttributeError, UnicodeDecodeError) as e:
        raise ResponseParseError(f"Invalid _search response: {e}") from e


def carry_over_state(old_rules: List[NotificationRule], new_rules: List[NotificationRule]) -> List[NotificationRule]:
    previous = {rule.name: rule for rule in old_rules}
    for rule in new_rules:
        old = previous.get(rule.name)
        if old is not None:
            rule.last_processed = old.last_processed
            rule.last_notified = old.last_notified
    return new_rules


class RuleEngine:
    def __init__(
        self,
        config: Config,
        dispatcher: FailoverDispatcher,
        notifier: NotificationDispatcher,
        rules_dir: Optional[str] = None,
        strict_reload: Optional[bool] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.logger = get_logger(__name__)
        self.config = config
        self.dispatcher = dispatcher
        self.notifier = notifier
        self.rules_dir = Path(rules_dir or config.rules_directory)
        self.strict_reload = config.rules_strict_reload if strict_reload is None else strict_reload
        self.clock = clock

        self._rules: List[NotificationRule] = []
        self._reload_requested = asyncio.Event()

    @property
    def rules(self) -> List[NotificationRule]:
        return list(self._rules)

    def _cluster_exists(self, name: str) -> bool:
        return self.config.get_cluster(name) is not None

    def load(self) -> None:
        """Initial load. Any bad rule file is fatal."""
        self._rules = read_rules(self.rules_dir, self._cluster_exists, strict=True)
        self._reload_requested.clear()
        self.logger.info(f"Loaded {len(self._rules)} notification rules")

    def request_reload(self) -> None:
        self._reload_requested.set()

    @property
    def reload_pending(self) -> bool:
        return self._reload_requested.is_set()

    def reload(self) -> None:
        self.logger.info("Reloading rules due to a change in a rule file")
        self._reload_requested.clear()
        reloaded = read_rules(self.rules_dir, self._cluster_exists, strict=self.strict_reload)
        self._rules = carry_over_state(self._rules, reloaded)
        self.logger.info(f"Reloaded {len(self._rules)} notification rules")

    def is_due(self, rule: NotificationRule, now: datetime) -> bool:
        return rule.enabled and is_older_than(rule.last_processed, timedelta(minutes=rule.interval), now)

    async def run_due_rules(self) -> None:
        if self._reload_requested.is_set():
            self.reload()

        for rule in self._rules:
            now = self.clock()
            if not self.is_due(rule, now):
                continue

            self.logger.info(f"Running rule: {rule.name}")
            rule.last_processed = now - timedelta(seconds=1)
            try:
                await self.process_rule(rule)
            except Exception as e:
                self.logger.error(f"Error processing rule {rule.name}: {e}", exc_info=True)

    async def process_rule(self, rule: NotificationRule) -> None:
        cluster = self.config.get_cluster(rule.cluster_name)
        if cluster is None:
            self.logger.error(f"Rule {rule.name} targets unknown cluster {rule.cluster_name}")
            return

        try:
            body = await self.dispatcher.request(cluster.hosts, "POST", rule.query_path, rule.query_body)
        except FailoverError as e:
            self.logger.error(f"Error running query for rule {rule.name} : {e}")
            return

        attachment: Optional[bytes] = None
        try:
            if rule.rule_type == "count":
                hit_count = parse_count_result(body)
            else:
                hit_count, attachment = parse_search_result(body)
        except ResponseParseError as e:
            self.logger.error(f"Error parsing result of query for rule {rule.name} : {e}")
            return

        await self.evaluate(rule, hit_count, attachment)

    async def evaluate(self, rule: NotificationRule, hit_count: int, attachment: Optional[bytes] = None) -> bool:
        if not compare(rule.operator, hit_count, rule.threshold):
            return False

        now = self.clock()
        if not is_older_than(rule.last_notified, timedelta(hours=rule.notification_interval), now):
            self.logger.info(f"Rule {rule.name} matched but notification is suppressed")
            return False

        rule.last_notified = now
        await self.notifier.notify_rule_triggered(
            RuleTriggered(
                rule_name=rule.name,
                message=rule.notification_message,
                hit_count=hit_count,
                attachment=attachment,
            ),
            rule.overrides,
        )
        return True

