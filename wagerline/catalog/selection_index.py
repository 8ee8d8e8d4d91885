"""
Selection Index - wager-eligible selections keyed for placement.

Records live in one flat table keyed by (event_id, market_id, line_key,
internal_id) with a secondary index by external line id. A rebuild creates a
fresh snapshot and swaps it in, so readers only ever see a complete snapshot.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Optional

from .tree import DEFAULT_LINE_KEY, EVENT, LINE, MARKET, SELECTION, TreeNode

logger = logging.getLogger(__name__)

IndexKey = tuple[str, str, str, str]


@dataclass
class SelectionRecord:
    """A wager-eligible selection."""
    line_id: str                     # external settlement id, required for placement
    internal_id: str                 # tree node id
    name: str
    odds: Optional[float]
    stake: Optional[float]
    line: Any
    event_id: str
    market_id: str
    line_key: str
    raw: dict = field(default_factory=dict)
    event_name: str = ""
    market_name: str = ""
    scheduled: Optional[str] = None


@dataclass
class IndexStats:
    """Counts for the current snapshot."""
    events: int = 0
    markets: int = 0
    selections: int = 0
    external_ids: int = 0
    seen: int = 0                    # selection nodes walked
    ineligible: int = 0              # walked but missing a line_id
    last_rebuilt: Optional[datetime] = None


class _Snapshot:
    """Immutable-after-build index state."""

    def __init__(self):
        self.table: dict[IndexKey, SelectionRecord] = {}
        self.by_line_id: dict[str, SelectionRecord] = {}
        self.events: set[str] = set()
        self.markets: set[tuple[str, str]] = set()
        self.seen = 0
        self.ineligible = 0
        self.built_at: Optional[datetime] = None


def _normalize_line_key(line: Any) -> str:
    if line is None:
        return DEFAULT_LINE_KEY
    text = str(line)
    try:
        value = float(text)
    except ValueError:
        return text
    return str(int(value)) if value.is_integer() else str(value)


class SelectionIndex:
    """Rebuildable lookup over all wager-eligible selections of one tree."""

    def __init__(self):
        self._snapshot = _Snapshot()

    def rebuild(self, tree: Iterable[TreeNode]) -> IndexStats:
        """Replace the index with the selections found in tree."""
        snapshot = _Snapshot()

        for root in tree:
            for event in (n for n in root.walk() if n.kind == EVENT):
                snapshot.events.add(event.id)
                for market in (n for n in event.walk() if n.kind == MARKET):
                    snapshot.markets.add((event.id, market.id))
                    for selection, line_key in self._iter_market_selections(market):
                        self._add(snapshot, event, market, selection, line_key)

        snapshot.built_at = datetime.now()
        self._snapshot = snapshot

        stats = self.stats()
        logger.info(
            f"Selection index built: {stats.selections}/{stats.seen} selections with line_id "
            f"({stats.events} events, {stats.markets} markets)"
        )
        return stats

    @staticmethod
    def _iter_market_selections(market: TreeNode):
        for child in market.children:
            if child.kind == SELECTION:
                yield child, child.data.get("line_key") or DEFAULT_LINE_KEY
            elif child.kind == LINE:
                line_key = child.data.get("line_key") or _normalize_line_key(child.data.get("line"))
                for selection in child.find_children(SELECTION):
                    yield selection, selection.data.get("line_key") or line_key

    @staticmethod
    def _add(snapshot: _Snapshot, event: TreeNode, market: TreeNode, selection: TreeNode, line_key: str):
        snapshot.seen += 1
        line_id = selection.data.get("line_id")
        if not line_id or not isinstance(line_id, str):
            snapshot.ineligible += 1
            logger.debug(f"Skipping selection without line_id: {selection.name}")
            return

        record = SelectionRecord(
            line_id=line_id,
            internal_id=selection.id,
            name=selection.name,
            odds=selection.data.get("odds"),
            stake=selection.data.get("stake"),
            line=selection.data.get("line"),
            event_id=event.id,
            market_id=market.id,
            line_key=line_key,
            raw=selection.data,
            event_name=event.name,
            market_name=market.name,
            scheduled=event.data.get("scheduled"),
        )
        snapshot.table[(event.id, market.id, line_key, selection.id)] = record
        snapshot.by_line_id[line_id] = record

    def clear(self) -> None:
        self._snapshot = _Snapshot()

    def __len__(self) -> int:
        return len(self._snapshot.table)

    def find(
        self,
        external_id: Optional[str] = None,
        event_id: Optional[str] = None,
        market_id: Optional[str] = None,
        line_key: Optional[str] = None,
        internal_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> Optional[SelectionRecord]:
        """
        Find the first matching selection.

        external_id is a direct lookup and ignores every other filter.
        Otherwise the table is scanned in insertion order, narrowed by
        event/market/line, with internal_id and name as final filters.
        """
        snapshot = self._snapshot
        if external_id is not None:
            return snapshot.by_line_id.get(external_id)

        for (ev, mk, lk, iid), record in snapshot.table.items():
            if event_id is not None and ev != event_id:
                continue
            if market_id is not None and mk != market_id:
                continue
            if line_key is not None and lk != line_key:
                continue
            if internal_id is not None and iid != internal_id:
                continue
            if name is not None and record.name != name:
                continue
            return record
        return None

    def selections_for_event(self, event_id: str) -> list[SelectionRecord]:
        return [r for (ev, _, _, _), r in self._snapshot.table.items() if ev == event_id]

    def selections_for_market(self, event_id: str, market_id: str) -> list[SelectionRecord]:
        return [
            r for (ev, mk, _, _), r in self._snapshot.table.items()
            if ev == event_id and mk == market_id
        ]

    def flatten(self) -> list[SelectionRecord]:
        return list(self._snapshot.table.values())

    def stats(self) -> IndexStats:
        snapshot = self._snapshot
        return IndexStats(
            events=len(snapshot.events),
            markets=len(snapshot.markets),
            selections=len(snapshot.table),
            external_ids=len(snapshot.by_line_id),
            seen=snapshot.seen,
            ineligible=snapshot.ineligible,
            last_rebuilt=snapshot.built_at,
        )
