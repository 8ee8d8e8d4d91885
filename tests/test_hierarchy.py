"""
Tests for the catalog hierarchy builder.

Covers line sub-layer materialization, category grouping, per-node failure
isolation and the async build over a fake venue client.
"""

import pytest

from fakes import EVENT_ID, FakeCatalogClient, make_tournament, sample_event, sample_markets
from wagerline.catalog.hierarchy import HierarchyBuilder, HierarchyOptions
from wagerline.catalog.tree import (
    CATEGORY,
    DEFAULT_LINE_KEY,
    EVENT,
    LINE,
    MARKET,
    SELECTION,
    TOURNAMENT,
    count_kind,
)
from wagerline.exceptions import VenueError
from wagerline.venue.models import SportEvent


@pytest.fixture
def builder():
    return HierarchyBuilder(client=None, options=HierarchyOptions(request_delay=0))


class TestMarketNode:
    """build_market_node()"""

    def test_dict_payload_creates_line_layer(self, builder):
        market = {
            "id": "m2",
            "name": "Run Line",
            "selections": {"-1.5": [{"line_id": "A", "odds": 2.1}], "1.5": [{"line_id": "B", "odds": 1.9}]},
        }
        node = builder.build_market_node(market)

        assert [c.kind for c in node.children] == [LINE, LINE]
        assert [c.name for c in node.children] == ["Line -1.5", "Line 1.5"]
        assert [c.id for c in node.children] == ["m2-line--1.5", "m2-line-1.5"]
        assert [len(c.children) for c in node.children] == [1, 1]

        selection = node.children[0].children[0]
        assert selection.id == "A"
        assert selection.data["line"] == -1.5
        assert selection.data["line_key"] == "-1.5"
        assert selection.data["odds"] == 2.1

    def test_moneyline_attaches_selections_directly(self, builder):
        market = {
            "id": "m1",
            "name": "Moneyline",
            "selections": [{"line_id": "H", "name": "Home"}, {"line_id": "A", "name": "Away"}],
        }
        node = builder.build_market_node(market)

        assert node.data["line_market"] is False
        assert [c.kind for c in node.children] == [SELECTION, SELECTION]
        assert [c.name for c in node.children] == ["Home", "Away"]
        assert all(c.data["line"] is None for c in node.children)
        assert all(c.data["line_key"] == DEFAULT_LINE_KEY for c in node.children)

    def test_single_line_group_has_no_layer(self, builder):
        market = {
            "id": "m5",
            "name": "Spread",
            "selections": [
                {"line_id": "S1", "name": "A -3.5", "line": -3.5},
                {"line_id": "S2", "name": "B +3.5", "line": -3.5},
            ],
        }
        node = builder.build_market_node(market)

        assert [c.kind for c in node.children] == [SELECTION, SELECTION]
        assert node.children[0].data["line"] is None
        assert node.children[0].data["line_key"] == "-3.5"

    def test_selection_without_id_or_label_is_dropped(self, builder):
        market = {
            "id": "m6",
            "name": "Moneyline",
            "selections": [{"odds": 2.0}, {"name": "Draw", "odds": 3.2}],
        }
        node = builder.build_market_node(market)

        assert len(node.children) == 1
        draw = node.children[0]
        assert draw.id == "m6-Draw"
        assert "line_id" not in draw.data

    def test_display_name_wins_over_name(self, builder):
        market = {"id": "m7", "name": "Moneyline",
                  "selections": [{"line_id": "X", "name": "x", "display_name": "Team X"}]}
        assert builder.build_market_node(market).children[0].name == "Team X"


class TestEventNode:
    """build_event_node()"""

    def test_groups_markets_by_category(self, builder):
        node = builder.build_event_node(sample_event(), sample_markets())

        assert node.kind == EVENT
        assert node.id == EVENT_ID
        assert [c.name for c in node.children] == ["Game Lines", "Totals", "Other"]
        assert all(c.kind == CATEGORY for c in node.children)
        assert [m.id for m in node.children[0].children] == ["m1", "m2"]

    def test_empty_markets_kept_by_default(self, builder):
        markets = [{"id": "m8", "name": "Props", "category_name": "Props", "selections": []}]
        node = builder.build_event_node(sample_event(), markets)

        assert count_kind([node], MARKET) == 1

    def test_empty_markets_dropped_when_configured(self):
        builder = HierarchyBuilder(None, HierarchyOptions(request_delay=0, keep_empty_markets=False))
        markets = [{"id": "m8", "name": "Props", "category_name": "Props", "selections": []}]
        node = builder.build_event_node(sample_event(), markets)

        assert node.children == []

    def test_bad_market_is_isolated(self, builder):
        markets = sample_markets() + [{"name": "Broken", "category_name": "Game Lines", "selections": []}]
        node = builder.build_event_node(sample_event(), markets)

        assert builder.report.failed_markets == 1
        assert count_kind([node], MARKET) == 4

    def test_no_markets(self, builder):
        assert builder.build_event_node(sample_event(), None).children == []


class TestBuild:
    """HierarchyBuilder.build() over a fake client"""

    def _client(self, **kwargs):
        tournaments = [make_tournament("t1", "MLB"), make_tournament("t2", "NHL"), make_tournament("t3", "Empty")]
        events = {
            "t1": [sample_event(), SportEvent(event_id="ev2", name="Mets vs Cubs")],
            "t2": [SportEvent(event_id="ev3", name="Bruins vs Leafs")],
        }
        markets = {
            EVENT_ID: sample_markets(),
            "ev2": [],
            "ev3": [{"id": "p1", "name": "Puck Line", "selections": {"-1.5": [{"line_id": "P1"}],
                                                                     "1.5": [{"line_id": "P2"}]}}],
        }
        return FakeCatalogClient(tournaments, events, markets, **kwargs)

    @pytest.mark.asyncio
    async def test_full_build(self):
        builder = HierarchyBuilder(self._client(), HierarchyOptions(request_delay=0))
        tree = await builder.build()

        assert [t.name for t in tree] == ["MLB", "NHL"]
        assert all(t.kind == TOURNAMENT for t in tree)
        # ev2 has no markets and is pruned
        assert [e.id for e in tree[0].children] == [EVENT_ID]
        assert count_kind(tree, LINE) == 6
        assert builder.report.failures == 0
        assert builder.report.tournaments == 2
        assert builder.report.events == 2

    @pytest.mark.asyncio
    async def test_empty_nodes_kept_without_pruning(self):
        options = HierarchyOptions(request_delay=0, prune_empty_events=False, prune_empty_tournaments=False)
        tree = await HierarchyBuilder(self._client(), options).build()

        assert [e.id for e in tree[0].children] == [EVENT_ID, "ev2"]

    @pytest.mark.asyncio
    async def test_failing_tournament_is_skipped(self):
        builder = HierarchyBuilder(self._client(failing_tournaments={"t1"}), HierarchyOptions(request_delay=0))
        tree = await builder.build()

        assert [t.name for t in tree] == ["NHL"]
        assert builder.report.failed_tournaments == 1

    @pytest.mark.asyncio
    async def test_failing_event_is_skipped(self):
        builder = HierarchyBuilder(self._client(failing_events={EVENT_ID}), HierarchyOptions(request_delay=0))
        tree = await builder.build()

        assert [t.name for t in tree] == ["NHL"]
        assert builder.report.failed_events == 1

    @pytest.mark.asyncio
    async def test_tournament_listing_failure_propagates(self):
        client = self._client()

        async def broken():
            raise VenueError("down", status=503)

        client.get_tournaments = broken
        with pytest.raises(VenueError):
            await HierarchyBuilder(client, HierarchyOptions(request_delay=0)).build()
