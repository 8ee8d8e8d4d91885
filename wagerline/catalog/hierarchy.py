"""
Hierarchy Builder - walks tournaments -> events -> markets into a TreeNode tree.

Each tournament, event, category and market is processed in isolation: a
failure is logged and only that node is skipped, so one malformed upstream
record never blanks the whole catalog.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Optional

from ..venue.models import SportEvent, Tournament
from .normalizer import (
    canonical_line_key,
    compile_line_pattern,
    format_line,
    is_line_market,
    normalize_market,
    parse_line,
)
from .tree import (
    CATEGORY,
    DEFAULT_LINE_KEY,
    EVENT,
    LINE,
    MARKET,
    SELECTION,
    TOURNAMENT,
    TreeNode,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Other"


@dataclass
class HierarchyOptions:
    """Tuning for a catalog build."""
    request_delay: float = 0.1               # pause before each catalog fetch
    keep_empty_markets: bool = True          # keep markets with no selections (operator visibility)
    prune_empty_events: bool = True
    prune_empty_tournaments: bool = True
    line_market_pattern: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: dict) -> "HierarchyOptions":
        return cls(
            request_delay=settings.get("request_delay", 0.1),
            keep_empty_markets=settings.get("keep_empty_markets", True),
            prune_empty_events=settings.get("prune_empty_events", True),
            prune_empty_tournaments=settings.get("prune_empty_tournaments", True),
            line_market_pattern=settings.get("line_market_pattern"),
        )


@dataclass
class BuildReport:
    """Diagnostics for one build."""
    tournaments: int = 0
    events: int = 0
    markets: int = 0
    selections: int = 0
    failed_tournaments: int = 0
    failed_events: int = 0
    failed_categories: int = 0
    failed_markets: int = 0

    @property
    def failures(self) -> int:
        return (
            self.failed_tournaments + self.failed_events
            + self.failed_categories + self.failed_markets
        )


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class HierarchyBuilder:
    """
    Builds the catalog tree from the venue API.

    The client must provide async get_tournaments(), get_events(tournament_id)
    and get_markets(event_id).
    """

    def __init__(self, client, options: Optional[HierarchyOptions] = None):
        self.client = client
        self.options = options or HierarchyOptions()
        self._pattern = compile_line_pattern(self.options.line_market_pattern)
        self.report = BuildReport()

    async def build(self) -> list[TreeNode]:
        """
        Fetch the whole catalog and return the tree.

        Raises whatever the tournament listing raises (nothing to build
        without it); everything below that level degrades to partial results.
        """
        self.report = BuildReport()
        logger.info("Starting catalog build...")

        tournaments = await self.client.get_tournaments()
        logger.info(f"Fetched {len(tournaments)} tournaments")

        tree: list[TreeNode] = []
        for tournament in tournaments:
            try:
                node = await self._build_tournament(tournament)
            except Exception as e:
                self.report.failed_tournaments += 1
                logger.error(f"Error processing tournament {tournament.name}: {e}")
                continue

            if node is None:
                continue
            if node.children or not self.options.prune_empty_tournaments:
                tree.append(node)

        self.report.tournaments = len(tree)
        logger.info(
            f"Catalog built: {self.report.tournaments} tournaments, "
            f"{self.report.events} events, {self.report.markets} markets, "
            f"{self.report.selections} selections ({self.report.failures} failures)"
        )
        return tree

    async def _build_tournament(self, tournament: Tournament) -> Optional[TreeNode]:
        logger.info(f"Processing tournament: {tournament.name}")
        await asyncio.sleep(self.options.request_delay)

        events = await self.client.get_events(tournament.id)
        if not events:
            logger.info(f"No events found for tournament: {tournament.name}")
            return None

        logger.info(f"Found {len(events)} events for tournament: {tournament.name}")
        node = TreeNode(id=str(tournament.id), name=tournament.name, kind=TOURNAMENT)

        # Market fetches run concurrently (bounded by the orchestrator), nodes keep source order
        results = await asyncio.gather(
            *[self._fetch_markets(event) for event in events],
            return_exceptions=True,
        )

        for event, markets in zip(events, results):
            if isinstance(markets, BaseException):
                self.report.failed_events += 1
                logger.error(f"Error fetching markets for event {event.name}: {markets}")
                continue
            try:
                event_node = self.build_event_node(event, markets)
            except Exception as e:
                self.report.failed_events += 1
                logger.error(f"Error processing event {event.name}: {e}")
                continue

            if event_node.children or not self.options.prune_empty_events:
                node.children.append(event_node)
                self.report.events += 1

        return node

    async def _fetch_markets(self, event: SportEvent) -> list:
        await asyncio.sleep(self.options.request_delay)
        logger.debug(f"Fetching markets for event: {event.name}")
        return await self.client.get_markets(event.event_id)

    # ==========================================
    # Synchronous node construction
    # ==========================================

    def build_event_node(self, event: SportEvent, markets: Optional[list]) -> TreeNode:
        """Build an event node with category -> market children."""
        event_node = TreeNode(
            id=str(event.event_id),
            name=event.name,
            kind=EVENT,
            data={
                "scheduled": event.scheduled,
                "status": event.status,
                "competitors": event.competitors,
            },
        )
        if not markets:
            logger.debug(f"No markets found for event: {event.name}")
            return event_node

        categorized: dict[str, list] = {}
        for market in markets:
            category = (market.get("category_name") if isinstance(market, dict) else None) or DEFAULT_CATEGORY
            categorized.setdefault(category, []).append(market)

        for category_name, category_markets in categorized.items():
            try:
                category_node = TreeNode(
                    id=f"{event.event_id}-{category_name}",
                    name=category_name,
                    kind=CATEGORY,
                )
                for market in category_markets:
                    try:
                        market_node = self.build_market_node(market)
                    except Exception as e:
                        self.report.failed_markets += 1
                        label = market.get("name") if isinstance(market, dict) else market
                        logger.error(f"Error processing market {label}: {e}")
                        continue

                    if market_node.children or self.options.keep_empty_markets:
                        category_node.children.append(market_node)
                        self.report.markets += 1

                if category_node.children:
                    event_node.children.append(category_node)

            except Exception as e:
                self.report.failed_categories += 1
                logger.error(f"Error processing category {category_name}: {e}")

        return event_node

    def build_market_node(self, market: dict) -> TreeNode:
        """
        Build a market node.

        Selections hang directly under the market unless the market resolves
        to more than one line group, in which case a line layer is added.
        """
        market_id = str(market["id"])
        name = market.get("name") or ""
        line_market = is_line_market(name, self._pattern)

        market_node = TreeNode(
            id=market_id,
            name=name,
            kind=MARKET,
            data={
                "status": market.get("status"),
                "type": market.get("type"),
                "line_market": line_market,
            },
        )

        groups = normalize_market(market, self._pattern)
        if not groups:
            logger.debug(f"Market {name} has no normalized selections")
            return market_node

        if len(groups) > 1:
            for group in groups:
                line_key = canonical_line_key(group.line, line_market)
                label = "default" if line_key == DEFAULT_LINE_KEY else line_key
                line_node = TreeNode(
                    id=f"{market_id}-line-{label}",
                    name=f"Line {format_line(group.line)}" if group.line is not None else "Default Line",
                    kind=LINE,
                    data={"line": group.line, "line_key": line_key},
                )
                for selection in group.selections:
                    own_line = parse_line(selection.get("line"))
                    node = self._selection_node(
                        selection,
                        market_id,
                        line=own_line if own_line is not None else group.line,
                        line_key=line_key,
                    )
                    if node:
                        line_node.children.append(node)

                if line_node.children:
                    market_node.children.append(line_node)
        else:
            # Single group: no sub-layer, and no line shown (avoids "Line: 0")
            group = groups[0]
            line_key = canonical_line_key(group.line, line_market)
            for selection in group.selections:
                node = self._selection_node(selection, market_id, line=None, line_key=line_key)
                if node:
                    market_node.children.append(node)

        return market_node

    def _selection_node(
        self,
        selection: dict,
        market_id: str,
        line: Any,
        line_key: str,
    ) -> Optional[TreeNode]:
        line_id = selection.get("line_id")
        label = selection.get("display_name") or selection.get("name")
        if not (line_id or label):
            return None

        data = {
            "odds": _as_float(selection.get("odds")),
            "stake": _as_float(selection.get("stake")),
            "line": line,
            "line_key": line_key,
            "display_odds": selection.get("display_odds") or None,
            "raw": selection,
        }
        if line_id:
            data["line_id"] = str(line_id)

        self.report.selections += 1
        return TreeNode(
            id=str(line_id) if line_id else f"{market_id}-{label}",
            name=label or "Unknown Selection",
            kind=SELECTION,
            data=data,
        )
