from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..notifications import NotificationOverrides

RULE_TYPES = ("count", "search")


@dataclass
class NotificationRule:
    name: str
    rule_type: str
    cluster_name: str
    operator: str
    threshold: int
    interval: int  # minutes between evaluations
    notification_interval: int  # hours between notifications
    notification_message: str = ""
    index_name: str = ""
    document_type: str = ""
    enabled: bool = True
    query: Any = None
    query_body: Optional[bytes] = None
    overrides: NotificationOverrides = field(default_factory=NotificationOverrides)
    source_file: str = ""
    last_processed: Optional[datetime] = None
    last_notified: Optional[datetime] = None

    @property
    def query_path(self) -> str:
        if not self.index_name:
            target = "*"
        elif self.document_type:
            target = f"{self.index_name}/{self.document_type}"
        else:
            target = self.index_name
        return f"{target}/_{self.rule_type}"
