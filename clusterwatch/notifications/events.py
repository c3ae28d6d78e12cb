from dataclasses import dataclass
from typing import Optional


@dataclass
class NodeCountChange:
    cluster_name: str
    expected: int
    found: int


@dataclass
class ClusterStateChange:
    cluster_name: str
    status: str  # "yellow", "red" or "unavailable"


@dataclass
class RuleTriggered:
    rule_name: str
    message: str
    hit_count: int
    attachment: Optional[bytes] = None
