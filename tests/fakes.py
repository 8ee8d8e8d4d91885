"""
Test doubles and sample venue payloads.

One baseball event with four markets:
- m1 Moneyline   flat, no line               -> H, A
- m2 Run Line    dict keyed by line          -> A15 (-1.5), B15 (1.5)
- m3 Total Runs  flat + market_lines         -> O85, Under (no line_id), O95, U95
- m4 First Inning flat, no category          -> F1
"""

import asyncio

from wagerline.catalog.hierarchy import HierarchyBuilder, HierarchyOptions
from wagerline.catalog.tree import TOURNAMENT, TreeNode
from wagerline.exceptions import VenueError
from wagerline.venue.models import SportEvent, Tournament

EVENT_ID = "ev1"
EVENT_NAME = "Yankees vs Red Sox"
EVENT_SCHEDULED = "2025-10-18T19:05:00Z"

ELIGIBLE_LINE_IDS = ["H", "A", "A15", "B15", "O85", "O95", "U95", "F1"]


def sample_markets() -> list[dict]:
    return [
        {
            "id": "m1",
            "name": "Moneyline",
            "category_name": "Game Lines",
            "status": "active",
            "selections": [
                {"line_id": "H", "name": "Yankees", "odds": 1.8, "stake": 100, "display_odds": "-125"},
                {"line_id": "A", "name": "Red Sox", "odds": 2.1, "stake": 50, "display_odds": "+110"},
            ],
        },
        {
            "id": "m2",
            "name": "Run Line",
            "category_name": "Game Lines",
            "status": "active",
            "selections": {
                "-1.5": [{"line_id": "A15", "name": "Yankees -1.5", "odds": 2.1}],
                "1.5": [{"line_id": "B15", "name": "Red Sox +1.5", "odds": 1.9}],
            },
        },
        {
            "id": "m3",
            "name": "Total Runs",
            "category_name": "Totals",
            "status": "active",
            "selections": [
                {"line_id": "O85", "name": "Over", "odds": 1.95, "line": 8.5},
                {"name": "Under", "odds": 1.9, "line": 8.5},
            ],
            "market_lines": [
                {
                    "line": 9.5,
                    "over": {"line_id": "O95", "name": "Over", "odds": 2.2},
                    "under": {"line_id": "U95", "name": "Under", "odds": 1.7},
                },
            ],
        },
        {
            "id": "m4",
            "name": "First Inning",
            "status": "active",
            "selections": [{"line_id": "F1", "name": "Yes", "odds": 3.0}],
        },
    ]


def sample_event() -> SportEvent:
    return SportEvent(event_id=EVENT_ID, name=EVENT_NAME, scheduled=EVENT_SCHEDULED, status="not_started")


def build_sample_tree() -> list[TreeNode]:
    """One tournament -> one event tree built without any I/O."""
    builder = HierarchyBuilder(client=None, options=HierarchyOptions(request_delay=0))
    event_node = builder.build_event_node(sample_event(), sample_markets())
    return [TreeNode(id="t1", name="MLB", kind=TOURNAMENT, children=[event_node])]


class FakeCatalogClient:
    """In-memory stand-in for VenueClient's catalog calls."""

    def __init__(self, tournaments, events, markets, failing_tournaments=(), failing_events=()):
        self.tournaments = tournaments
        self.events = events
        self.markets = markets
        self.failing_tournaments = set(failing_tournaments)
        self.failing_events = set(failing_events)

    async def get_tournaments(self):
        return list(self.tournaments)

    async def get_events(self, tournament_id):
        if tournament_id in self.failing_tournaments:
            raise VenueError("events unavailable", status=503)
        return list(self.events.get(tournament_id, []))

    async def get_markets(self, event_id):
        if event_id in self.failing_events:
            raise VenueError("markets unavailable", status=503)
        return list(self.markets.get(event_id, []))


class FakeWagerClient:
    """Serves WagerPage objects keyed by cursor; can fail the first N calls."""

    def __init__(self, pages=None, failures=0, error=None, delay=0.0):
        self.pages = pages or {}
        self.failures = failures
        self.error = error
        self.delay = delay
        self.queries = []

    async def get_my_wagers(self, query):
        self.queries.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failures > 0:
            self.failures -= 1
            raise self.error or VenueError("upstream unavailable", status=503)
        return self.pages[query.cursor]


def make_tournament(tournament_id: str, name: str) -> Tournament:
    return Tournament(id=tournament_id, name=name)
