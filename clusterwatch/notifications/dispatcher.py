from typing import Any, Dict, Iterable, Optional

from .events import ClusterStateChange, NodeCountChange, RuleTriggered
from .formatter import MessageFormatter
from .settings import (
    EmailSettings,
    NotificationOverrides,
    SlackSettings,
    TelegramSettings,
    resolve_settings,
)
from ..utils.logger import get_logger


class NotificationDispatcher:
    """Fans a message out to every globally enabled channel.

    Channel selection is global; a rule can only change the settings a channel
    is invoked with, never whether it is invoked.
    """

    def __init__(
        self,
        channels: Dict[str, Any],
        enabled: Iterable[str],
        formatter: MessageFormatter,
        slack_defaults: Optional[SlackSettings] = None,
        email_defaults: Optional[EmailSettings] = None,
        telegram_defaults: Optional[TelegramSettings] = None,
    ):
        self.logger = get_logger(__name__)
        self.channels = channels
        self.enabled = [name.lower() for name in enabled]
        self.formatter = formatter
        self.defaults = {
            "slack": slack_defaults or SlackSettings(),
            "email": email_defaults or EmailSettings(),
            "telegram": telegram_defaults or TelegramSettings(),
        }

        for name in self.enabled:
            if name not in self.channels:
                self.logger.warning(f"Notification channel {name} is enabled but not supported")

    def resolve(self, channel_name: str, overrides: Optional[NotificationOverrides] = None):
        defaults = self.defaults[channel_name]
        override = getattr(overrides, channel_name) if overrides else None
        return resolve_settings(defaults, override)

    async def send(
        self,
        message: str,
        attachment: Optional[bytes] = None,
        overrides: Optional[NotificationOverrides] = None,
    ) -> Dict[str, bool]:
        results: Dict[str, bool] = {}

        for name in self.enabled:
            channel = self.channels.get(name)
            if channel is None:
                continue

            settings = self.resolve(name, overrides)
            try:
                results[name] = await channel.send(message, attachment, settings)
            except Exception as e:
                self.logger.error(f"Notification channel {name} failed: {e}", exc_info=True)
                results[name] = False

        self.logger.info(f"Notification Posted: {message}")
        return results

    async def notify_node_count_change(self, change: NodeCountChange) -> None:
        await self.send(self.formatter.format_node_count_change(change))

    async def notify_cluster_state(self, change: ClusterStateChange) -> None:
        await self.send(self.formatter.format_cluster_state(change))

    async def notify_rule_triggered(
        self, event: RuleTriggered, overrides: Optional[NotificationOverrides] = None
    ) -> None:
        await self.send(self.formatter.format_rule_triggered(event), event.attachment, overrides)

    async def notify_service_started(self) -> None:
        await self.send(self.formatter.format_service_started())

    async def notify_service_stopped(self) -> None:
        await self.send(self.formatter.format_service_stopped())

    async def close(self) -> None:
        for channel in self.channels.values():
            close = getattr(channel, "close", None)
            if close:
                await close()
