"""
Data models for the catalog hierarchy.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Union

# Node kinds, top to bottom
TOURNAMENT = "tournament"
EVENT = "event"
CATEGORY = "category"
MARKET = "market"
LINE = "line"
SELECTION = "selection"

# Canonical line key for markets without a line (moneyline style)
DEFAULT_LINE_KEY = "__default__"

LineValue = Union[int, float, str]


@dataclass
class TreeNode:
    """One level of the catalog tree."""
    id: str
    name: str
    kind: str                                   # tournament/event/category/market/line/selection
    children: list["TreeNode"] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    def walk(self) -> Iterator["TreeNode"]:
        """Depth-first iteration over this node and its descendants."""
        yield self
        for child in self.children:
            yield from child.walk()

    def find_children(self, kind: str) -> list["TreeNode"]:
        """Direct children of the given kind."""
        return [c for c in self.children if c.kind == kind]


@dataclass
class SelectionGroup:
    """Raw selections sharing one betting line (normalizer output)."""
    line: Optional[LineValue] = None
    selections: list[dict] = field(default_factory=list)


def count_kind(tree: list[TreeNode], kind: str) -> int:
    """Count nodes of a given kind across a forest."""
    return sum(1 for root in tree for node in root.walk() if node.kind == kind)
