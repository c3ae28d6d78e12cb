from .dispatcher import NotificationDispatcher
from .events import NodeCountChange, ClusterStateChange, RuleTriggered
from .formatter import MessageFormatter
from .settings import (
    SlackSettings,
    EmailSettings,
    TelegramSettings,
    NotificationOverrides,
    resolve_settings,
)
from .slack import SlackChannel
from .mail import EmailChannel
from .telegram import TelegramChannel

__all__ = [
    "NotificationDispatcher",
    "NodeCountChange",
    "ClusterStateChange",
    "RuleTriggered",
    "MessageFormatter",
    "SlackSettings",
    "EmailSettings",
    "TelegramSettings",
    "NotificationOverrides",
    "resolve_settings",
    "SlackChannel",
    "EmailChannel",
    "TelegramChannel",
]
