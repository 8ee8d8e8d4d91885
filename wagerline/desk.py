"""
WagerDesk - owns the venue session, odds ladder, catalog tree and selection index.

Flow:
1. login() authenticates and loads the odds ladder
2. load_catalog() builds the tree and swaps in a fresh selection index
3. place_wager() / cancel_wager() submit through the orchestrator
4. order_poller() keeps wager state fresh; enrich() labels wagers from the index
"""

import logging
from typing import Optional

import httpx

from .catalog.hierarchy import BuildReport, HierarchyBuilder, HierarchyOptions
from .catalog.selection_index import IndexStats, SelectionIndex, SelectionRecord
from .catalog.tree import EVENT, MARKET, TreeNode, count_kind
from .config import ConfigLoader
from .exceptions import ValidationError, WagerlineError
from .odds import OddsLadder
from .venue.client import VenueClient
from .venue.models import AuthSession, OrderRecord, WagerPage, WagerQuery
from .venue.orchestrator import RequestOrchestrator
from .wagers.enrichment import EnrichedOrder, enrich_orders
from .wagers.payload import build_cancel_payload, build_wager_payload
from .wagers.polling import OrderPoller

logger = logging.getLogger(__name__)


class WagerDesk:
    """
    Service context for one venue account.

    All mutable state (session, ladder, tree, index, pollers) lives on the
    instance; nothing is module-global.
    """

    def __init__(
        self,
        config: Optional[ConfigLoader] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the desk.

        Args:
            config: Config loader (default: project config/settings.yaml)
            transport: Optional httpx transport passed to the orchestrator
        """
        self.config = config or ConfigLoader()
        api = self.config.get_api_settings()
        self.orchestrator = RequestOrchestrator(
            base_url=api["base_url"],
            timeout=api["timeout"],
            transport=transport,
            **self.config.get_orchestrator_settings(),
        )
        self.client = VenueClient(self.orchestrator)
        self.catalog_options = HierarchyOptions.from_settings(self.config.get_catalog_settings())

        self.ladder = OddsLadder()
        self.index = SelectionIndex()
        self.tree: list[TreeNode] = []
        self.last_report: Optional[BuildReport] = None
        self._pollers: list[OrderPoller] = []

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        await self.orchestrator.start()

    async def close(self):
        """Stop every poller and the orchestrator's background work."""
        for poller in self._pollers:
            await poller.stop()
        self._pollers.clear()
        await self.orchestrator.close()

    # ==========================================
    # Session
    # ==========================================

    async def login(self, access_key: Optional[str] = None, secret_key: Optional[str] = None) -> AuthSession:
        """Authenticate (credentials default to config) and load the odds ladder."""
        if access_key is None or secret_key is None:
            creds = self.config.get_credentials()
            access_key = access_key or creds["access_key"]
            secret_key = secret_key or creds["secret_key"]
        if not access_key or not secret_key:
            raise ValidationError("Access key and secret key are required")

        session = await self.orchestrator.authenticate(access_key, secret_key)

        try:
            await self.load_ladder()
        except WagerlineError as e:
            logger.warning(f"Failed to load odds ladder: {e}")

        return session

    async def load_ladder(self) -> list[float]:
        logger.info("Loading odds ladder...")
        ticks = await self.client.get_odds_ladder()
        self.ladder.set(ticks)
        return self.ladder.ticks

    # ==========================================
    # Catalog
    # ==========================================

    async def load_catalog(self) -> IndexStats:
        """Build the catalog tree and rebuild the selection index from it."""
        logger.info("Starting data load...")
        builder = HierarchyBuilder(self.client, self.catalog_options)
        tree = await builder.build()

        self.tree = tree
        self.last_report = builder.report
        stats = self.index.rebuild(tree)

        if tree:
            logger.info(f"Loaded {len(tree)} tournaments with {stats.selections} wager-eligible selections")
        else:
            logger.warning("No tournament data was loaded")
        return stats

    def find_selection(self, **filters) -> Optional[SelectionRecord]:
        return self.index.find(**filters)

    def summary(self) -> dict:
        """Counts for the current tree and index."""
        stats = self.index.stats()
        return {
            "tournaments": len(self.tree),
            "events": count_kind(self.tree, EVENT),
            "markets": count_kind(self.tree, MARKET),
            "wager_eligible": stats.selections,
            "ineligible": stats.ineligible,
            "last_rebuilt": stats.last_rebuilt,
        }

    # ==========================================
    # Wagers
    # ==========================================

    async def place_wager(
        self,
        line_id: str,
        odds: float,
        stake: float,
        external_id: Optional[str] = None,
        wager_strategy: Optional[str] = None,
    ) -> dict:
        """Validate, ladder-snap and submit a wager."""
        payload = build_wager_payload(
            line_id,
            odds,
            stake,
            ladder=self.ladder,
            external_id=external_id,
            wager_strategy=wager_strategy,
        )
        if self.index.find(external_id=line_id) is None:
            logger.warning(f"Line {line_id} is not in the current selection index")
        return await self.client.place_wager(payload)

    async def cancel_wager(self, wager_id: Optional[str] = None, external_id: Optional[str] = None) -> dict:
        payload = build_cancel_payload(wager_id=wager_id, external_id=external_id)
        return await self.client.cancel_wager(payload)

    async def fetch_wagers(self, query: Optional[WagerQuery] = None) -> WagerPage:
        """One page of wager history (default: last 7 days)."""
        return await self.client.get_my_wagers(query or WagerQuery.trailing())

    def order_poller(self, event_id: Optional[str] = None, market_id: Optional[str] = None) -> OrderPoller:
        """Create a poller that is stopped automatically on close()."""
        poller = OrderPoller.from_settings(
            self.client,
            self.config.get_polling_settings(),
            event_id=event_id,
            market_id=market_id,
        )
        self._pollers.append(poller)
        return poller

    def enrich(self, orders: list[OrderRecord]) -> list[EnrichedOrder]:
        return enrich_orders(orders, self.index)
