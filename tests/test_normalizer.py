"""
Tests for market selection shape detection, normalization and de-duplication.
"""

import re

import pytest

from wagerline.catalog.normalizer import (
    SHAPE_DICT,
    SHAPE_EMPTY,
    SHAPE_FLAT,
    SHAPE_NESTED,
    canonical_line_key,
    dedupe_selections,
    detect_shape,
    extract_line_selections,
    format_line,
    groups_from_market_lines,
    groups_from_shape,
    is_line_market,
    merge_groups,
    normalize_market,
    parse_line,
)
from wagerline.catalog.tree import DEFAULT_LINE_KEY, SelectionGroup


class TestShapeDetection:

    @pytest.mark.parametrize("payload, expected", [
        (None, SHAPE_EMPTY),
        ([], SHAPE_EMPTY),
        ({}, SHAPE_EMPTY),
        ({"-1.5": []}, SHAPE_DICT),
        ([[{"line_id": "A"}]], SHAPE_NESTED),
        ([{"line_id": "A"}], SHAPE_FLAT),
        ("not a payload", SHAPE_EMPTY),
    ])
    def test_detect_shape(self, payload, expected):
        assert detect_shape(payload).kind == expected

    def test_dict_shape_yields_one_group_per_key(self):
        payload = {"-1.5": [{"line_id": "A", "odds": 2.1}], "1.5": [{"line_id": "B", "odds": 1.9}]}
        groups = groups_from_shape(detect_shape(payload))

        assert [g.line for g in groups] == [-1.5, 1.5]
        assert [[s["line_id"] for s in g.selections] for g in groups] == [["A"], ["B"]]

    def test_nested_shape_takes_line_from_records(self):
        payload = [
            [{"line_id": "O1", "line": 8.5}, {"line_id": "U1", "line": 8.5}],
            [{"line_id": "O2"}, {"line_id": "U2", "line": "9.5"}],
            [],
        ]
        groups = groups_from_shape(detect_shape(payload))

        assert [g.line for g in groups] == [8.5, 9.5]
        assert len(groups[1].selections) == 2

    def test_nested_shape_without_line_uses_none(self):
        groups = groups_from_shape(detect_shape([[{"line_id": "H"}, {"line_id": "A"}]]))
        assert len(groups) == 1
        assert groups[0].line is None

    def test_flat_shape_groups_by_declared_line(self):
        payload = [
            {"line_id": "O85", "line": 8.5},
            {"line_id": "O95", "line": 9.5},
            {"line_id": "U85", "line": "8.5"},
            "junk",
        ]
        groups = groups_from_shape(detect_shape(payload))

        assert [g.line for g in groups] == [8.5, 9.5]
        assert [s["line_id"] for s in groups[0].selections] == ["O85", "U85"]


class TestLineHelpers:

    @pytest.mark.parametrize("raw, expected", [
        ("-1.5", -1.5),
        ("2", 2),
        ("2.0", 2),
        (7.5, 7.5),
        ("pk", "pk"),
        (None, None),
    ])
    def test_parse_line(self, raw, expected):
        assert parse_line(raw) == expected

    def test_format_line(self):
        assert format_line(2.0) == "2"
        assert format_line(-1.5) == "-1.5"
        assert format_line(None) == ""

    def test_canonical_key_for_line_market(self):
        assert canonical_line_key(2.0, True) == "2"
        assert canonical_line_key(-1.5, True) == "-1.5"
        assert canonical_line_key(None, True) == DEFAULT_LINE_KEY

    def test_canonical_key_ignores_line_on_non_line_market(self):
        assert canonical_line_key(0, False) == DEFAULT_LINE_KEY
        assert canonical_line_key(1.5, False) == DEFAULT_LINE_KEY

    @pytest.mark.parametrize("name, expected", [
        ("Run Line", True),
        ("Total Runs", True),
        ("Point Spread", True),
        ("Moneyline", False),
        ("First Inning", False),
        (None, False),
    ])
    def test_is_line_market(self, name, expected):
        assert is_line_market(name) is expected


class TestMarketLines:

    def test_extract_from_list_key(self):
        item = {"line": 1.5, "selections": [{"line_id": "A"}]}
        assert extract_line_selections(item) == [{"line_id": "A"}]

    def test_extract_from_side_keys(self):
        item = {"total": 9.5, "over": {"line_id": "O"}, "under": {"line_id": "U"}, "home": {}}
        assert [s["line_id"] for s in extract_line_selections(item)] == ["O", "U"]

    def test_list_payload(self):
        payload = [
            {"points": -3.5, "home": {"line_id": "H"}, "away": {"line_id": "A"}},
            {"line": 2.5},
            "junk",
        ]
        groups = groups_from_market_lines(payload)

        assert len(groups) == 1
        assert groups[0].line == -3.5
        assert [s["line_id"] for s in groups[0].selections] == ["H", "A"]

    def test_dict_payload(self):
        payload = {
            "8.5": [{"line_id": "O85"}],
            "9.5": {"over": {"line_id": "O95"}},
        }
        groups = groups_from_market_lines(payload)
        assert [g.line for g in groups] == [8.5, 9.5]


class TestMergeAndDedupe:

    def test_merge_by_canonical_key(self):
        groups = [
            SelectionGroup(line=8.5, selections=[{"line_id": "O"}]),
            SelectionGroup(line="8.5", selections=[{"line_id": "U"}]),
            SelectionGroup(line=9.5, selections=[{"line_id": "X"}]),
        ]
        merged = merge_groups(groups, line_market=True)

        assert len(merged) == 2
        assert [s["line_id"] for s in merged[0].selections] == ["O", "U"]

    def test_merge_collapses_non_line_market(self):
        groups = [
            SelectionGroup(line=0, selections=[{"line_id": "H"}]),
            SelectionGroup(line=None, selections=[{"line_id": "A"}]),
        ]
        merged = merge_groups(groups, line_market=False)

        assert len(merged) == 1
        assert merged[0].line is None

    def test_dedupe_keeps_first_by_line_id(self):
        selections = [
            {"line_id": "A", "odds": 2.1},
            {"line_id": "A", "odds": 2.3},
            {"line_id": "B", "odds": 1.9},
        ]
        unique = dedupe_selections(selections)
        assert [(s["line_id"], s["odds"]) for s in unique] == [("A", 2.1), ("B", 1.9)]

    def test_dedupe_by_composite_identity(self):
        selections = [
            {"name": "Over", "display_name": "O 8.5", "odds": 1.9, "line": 8.5},
            {"name": "Over", "display_name": "O 8.5", "odds": 1.9, "line": 8.5, "extra": True},
            {"name": "Over", "display_name": "O 8.5", "odds": 2.0, "line": 8.5},
        ]
        assert len(dedupe_selections(selections)) == 2


class TestNormalizeMarket:

    def test_line_market_from_dict_payload(self):
        market = {
            "name": "Run Line",
            "selections": {"-1.5": [{"line_id": "A", "odds": 2.1}], "1.5": [{"line_id": "B", "odds": 1.9}]},
        }
        groups = normalize_market(market)

        assert [g.line for g in groups] == [-1.5, 1.5]
        assert all(len(g.selections) == 1 for g in groups)

    def test_moneyline_normalizes_to_default_bucket(self):
        market = {
            "name": "Moneyline",
            "selections": [{"line_id": "H", "name": "Home"}, {"line_id": "A", "name": "Away"}],
        }
        groups = normalize_market(market)

        assert len(groups) == 1
        assert groups[0].line is None
        assert [s["line_id"] for s in groups[0].selections] == ["H", "A"]

    def test_secondary_source_merges_and_dedupes(self):
        market = {
            "name": "Total Runs",
            "selections": [{"line_id": "O85", "line": 8.5, "odds": 1.95}],
            "market_lines": [
                {"line": 8.5, "over": {"line_id": "O85", "odds": 1.5}, "under": {"line_id": "U85"}},
                {"line": 9.5, "over": {"line_id": "O95"}},
            ],
        }
        groups = normalize_market(market)

        assert [g.line for g in groups] == [8.5, 9.5]
        assert [s["line_id"] for s in groups[0].selections] == ["O85", "U85"]
        assert groups[0].selections[0]["odds"] == 1.95

    def test_errors_yield_empty_list(self):
        assert normalize_market("not a market") == []
        assert normalize_market({"name": 5, "selections": [{"line_id": "A"}]}) == []

    def test_custom_pattern(self):
        market = {"name": "Alt Goals", "selections": [{"line_id": "A", "line": 1.5}, {"line_id": "B", "line": 2.5}]}

        assert len(normalize_market(market)) == 1
        assert len(normalize_market(market, re.compile("goals", re.IGNORECASE))) == 2
