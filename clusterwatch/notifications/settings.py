from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, List, Optional, TypeVar

T = TypeVar("T")


@dataclass
class SlackSettings:
    uri: str = ""
    channel: str = ""
    sender: str = ""
    emoji: str = ""


@dataclass
class EmailSettings:
    smtp_server: str = ""
    smtp_port: int = 0
    smtp_auth_user: str = ""
    smtp_auth_password: str = ""
    from_address: str = ""
    to_addresses: List[str] = field(default_factory=list)


@dataclass
class TelegramSettings:
    bot_token: str = ""
    chat_id: str = ""
    topic_id: Optional[int] = None


@dataclass
class NotificationOverrides:
    slack: SlackSettings = field(default_factory=SlackSettings)
    email: EmailSettings = field(default_factory=EmailSettings)
    telegram: TelegramSettings = field(default_factory=TelegramSettings)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "NotificationOverrides":
        data = data or {}
        return cls(
            slack=_build(SlackSettings, data.get("slack")),
            email=_build(EmailSettings, data.get("email")),
            telegram=_build(TelegramSettings, data.get("telegram")),
        )


def _build(settings_class, data: Optional[Dict[str, Any]]):
    if not data:
        return settings_class()
    if not isinstance(data, dict):
        raise ValueError(f"{settings_class.__name__} override must be a mapping")

    known = {f.name for f in fields(settings_class)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {settings_class.__name__} override field(s): {', '.join(sorted(unknown))}")

    values = dict(data)
    if "smtp_port" in values:
        values["smtp_port"] = int(values["smtp_port"] or 0)
    if "to_addresses" in values and isinstance(values["to_addresses"], str):
        values["to_addresses"] = [values["to_addresses"]]
    if "chat_id" in values:
        values["chat_id"] = str(values["chat_id"])
    return settings_class(**values)


def resolve_settings(defaults: T, overrides: Optional[T]) -> T:
    """Overlay every non-empty, non-zero override field onto the defaults."""
    if overrides is None:
        return replace(defaults)

    changes = {}
    for f in fields(defaults):
        value = getattr(overrides, f.name)
        if value:
            changes[f.name] = value
    return replace(defaults, **changes)
