from dataclasses import dataclass
from typing import Dict, Iterator, List


@dataclass
class NodeRecord:
    name: str
    host: str
    processed: bool = False


class NodeRegistry:
    """Nodes discovered during one collection cycle of one cluster."""

    def __init__(self, nodes: List[NodeRecord] = None):
        self._nodes: Dict[str, NodeRecord] = {}
        for node in nodes or []:
            self._nodes[node.name] = node

    @classmethod
    def from_cat_nodes(cls, data: str) -> "NodeRegistry":
        """Build a registry from a ``_cat/nodes`` listing.

        Each row is whitespace-delimited; the first column is the reporting
        host and the last is the node name. Blank rows are ignored.
        """
        nodes = []
        for line in data.splitlines():
            columns = line.split()
            if not columns or not columns[-1]:
                continue
            nodes.append(NodeRecord(name=columns[-1], host=columns[0]))
        return cls(nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[NodeRecord]:
        return iter(list(self._nodes.values()))

    def __contains__(self, name: str) -> bool:
        return name in self._nodes

    def get(self, name: str) -> NodeRecord | None:
        return self._nodes.get(name)

    def mark_processed(self, name: str) -> None:
        node = self._nodes.get(name)
        if node is not None:
            node.processed = True

    def is_processed(self, name: str) -> bool:
        node = self._nodes.get(name)
        return node.processed if node is not None else False

    def unprocessed(self) -> List[NodeRecord]:
        return [node for node in self._nodes.values() if not node.processed]
