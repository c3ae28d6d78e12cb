from pathlib import Path
from typing import Optional

from fluent.runtime import FluentLocalization, FluentResourceLoader

from .events import ClusterStateChange, NodeCountChange, RuleTriggered
from ..utils.logger import get_logger


class MessageFormatter:
    SUPPORTED_LOCALES = ["en", "ru"]
    DEFAULT_LOCALE = "en"

    def __init__(self, locale: str = "en", locales_dir: Optional[Path] = None):
        self.logger = get_logger(__name__)
        self.locale = locale if locale in self.SUPPORTED_LOCALES else self.DEFAULT_LOCALE

        if locales_dir is None:
            locales_dir = Path(__file__).parent.parent / "locales"

        self.locales_dir = locales_dir
        self._loader = FluentResourceLoader(str(locales_dir / "{locale}"))
        self._l10n = FluentLocalization(
            locales=[self.locale, self.DEFAULT_LOCALE],
            resource_ids=["messages.ftl"],
            resource_loader=self._loader,
        )

    def format_node_count_change(self, change: NodeCountChange) -> str:
        return self._l10n.format_value(
            "node-count-changed",
            {"cluster": change.cluster_name, "expected": change.expected, "found": change.found},
        )

    def format_cluster_state(self, change: ClusterStateChange) -> str:
        if change.status == "unavailable":
            return self._l10n.format_value("cluster-unavailable", {"cluster": change.cluster_name})
        return self._l10n.format_value(
            "cluster-state-changed", {"cluster": change.cluster_name, "status": change.status}
        )

    def format_rule_triggered(self, event: RuleTriggered) -> str:
        # Counts are passed as text so Fluent does not add digit grouping.
        return self._l10n.format_value(
            "rule-triggered", {"message": event.message, "count": str(event.hit_count)}
        )

    def format_email_subject(self, message: str) -> str:
        return self._l10n.format_value("email-subject", {"message": message})

    def format_service_started(self) -> str:
        return self._l10n.format_value("service-started")

    def format_service_stopped(self) -> str:
        return self._l10n.format_value("service-stopped")
