"""
Shape Normalizer - turns a market's raw selections into line groups.

The venue returns market selections in several shapes:

- dict:   {"-1.5": [sel, ...], "1.5": [sel, ...]}   (keyed by line)
- nested: [[sel, sel], [sel, sel]]                   (one inner list per line)
- flat:   [sel, sel, sel]                            (each sel declares its line)

A secondary "market_lines" payload of looser shape may also be present.
Both sources are normalized independently, merged by canonical line key and
de-duplicated.
"""

import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Optional, Pattern, Union

from ..config import DEFAULT_LINE_MARKET_PATTERN
from .tree import DEFAULT_LINE_KEY, LineValue, SelectionGroup

logger = logging.getLogger(__name__)

# Shape tags returned by detect_shape()
SHAPE_DICT = "dict"
SHAPE_NESTED = "nested"
SHAPE_FLAT = "flat"
SHAPE_EMPTY = "empty"

# Keys under a market_lines item that hold a selection list
LIST_KEYS = ("selections", "options", "selections_for_line", "participants", "sides")
# Keys under a market_lines item that hold a single side's selection
SIDE_KEYS = ("home", "away", "over", "under", "h", "a", "o", "u")
# Keys under a market_lines item that carry its line value
LINE_VALUE_KEYS = ("line", "total", "points", "handicap")

_DEFAULT_PATTERN = re.compile(DEFAULT_LINE_MARKET_PATTERN, re.IGNORECASE)


@dataclass
class DetectedShape:
    """Result of shape detection: a tag plus the payload it applies to."""
    kind: str
    payload: Any = None


def compile_line_pattern(pattern: Union[str, Pattern, None]) -> Pattern:
    """Compile a line-market classifier (case-insensitive)."""
    if pattern is None:
        return _DEFAULT_PATTERN
    if isinstance(pattern, str):
        return re.compile(pattern, re.IGNORECASE)
    return pattern


def is_line_market(market_name: Optional[str], pattern: Optional[Pattern] = None) -> bool:
    """True for spread/total style markets whose selections carry a line."""
    return bool((pattern or _DEFAULT_PATTERN).search(market_name or ""))


def parse_line(raw: Any) -> Optional[LineValue]:
    """Parse a line value to a number when possible, else keep the string."""
    if raw is None:
        return None
    if isinstance(raw, bool):
        return str(raw)
    if isinstance(raw, (int, float)):
        return raw
    text = str(raw).strip()
    try:
        value = float(text)
    except ValueError:
        return str(raw)
    if not math.isfinite(value):
        return str(raw)
    return int(value) if value.is_integer() else value


def format_line(value: Any) -> str:
    """String form of a line value: 2.0 -> "2", -1.5 -> "-1.5"."""
    if value is None:
        return ""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def canonical_line_key(line: Any, line_market: bool) -> str:
    """
    Grouping key for a line value.

    Non-line markets always use the default bucket so a 0/None line never
    creates a spurious sub-line.
    """
    if not line_market or line is None:
        return DEFAULT_LINE_KEY
    return format_line(line)


# ==========================================
# Primary "selections" payload
# ==========================================

def detect_shape(payload: Any) -> DetectedShape:
    """Classify a raw selections payload."""
    if not payload:
        return DetectedShape(SHAPE_EMPTY)
    if isinstance(payload, dict):
        return DetectedShape(SHAPE_DICT, payload)
    if isinstance(payload, list):
        if isinstance(payload[0], list):
            return DetectedShape(SHAPE_NESTED, payload)
        return DetectedShape(SHAPE_FLAT, payload)
    logger.debug(f"Unsupported selections payload type: {type(payload).__name__}")
    return DetectedShape(SHAPE_EMPTY)


def groups_from_shape(detected: DetectedShape) -> list[SelectionGroup]:
    """Build line groups from a detected shape."""
    if detected.kind == SHAPE_DICT:
        return _groups_from_dict(detected.payload)
    if detected.kind == SHAPE_NESTED:
        return _groups_from_nested(detected.payload)
    if detected.kind == SHAPE_FLAT:
        return _groups_from_flat(detected.payload)
    return []


def _groups_from_dict(payload: dict) -> list[SelectionGroup]:
    groups = []
    for key, selections in payload.items():
        if isinstance(selections, list):
            groups.append(SelectionGroup(line=parse_line(key), selections=list(selections)))
    return groups


def _groups_from_nested(payload: list) -> list[SelectionGroup]:
    groups = []
    for inner in payload:
        if not isinstance(inner, list) or not inner:
            continue
        # Line comes from the first record declaring one, never from the position
        line = next(
            (s.get("line") for s in inner if isinstance(s, dict) and s.get("line") is not None),
            None,
        )
        groups.append(SelectionGroup(line=parse_line(line), selections=list(inner)))
    return groups


def _groups_from_flat(payload: list) -> list[SelectionGroup]:
    by_line: dict[str, SelectionGroup] = {}
    for sel in payload:
        if not isinstance(sel, dict):
            continue
        line = parse_line(sel.get("line"))
        key = DEFAULT_LINE_KEY if line is None else format_line(line)
        if key not in by_line:
            by_line[key] = SelectionGroup(line=line)
        by_line[key].selections.append(sel)
    return list(by_line.values())


# ==========================================
# Secondary "market_lines" payload
# ==========================================

def extract_line_selections(item: Any) -> list:
    """Pull the selection list out of one market_lines entry."""
    if not isinstance(item, dict):
        return []
    for key in LIST_KEYS:
        if isinstance(item.get(key), list):
            return item[key]
    return [item[k] for k in SIDE_KEYS if isinstance(item.get(k), dict) and item[k]]


def groups_from_market_lines(payload: Any) -> list[SelectionGroup]:
    """Normalize a market_lines payload (list of line objects or dict by line)."""
    groups = []
    if not payload:
        return groups

    if isinstance(payload, list):
        for item in payload:
            if not isinstance(item, dict):
                continue
            raw_line = next((item.get(k) for k in LINE_VALUE_KEYS if item.get(k) is not None), None)
            selections = extract_line_selections(item)
            if selections:
                groups.append(SelectionGroup(line=parse_line(raw_line), selections=list(selections)))
        return groups

    if isinstance(payload, dict):
        for key, value in payload.items():
            line = parse_line(key)
            if isinstance(value, list):
                groups.append(SelectionGroup(line=line, selections=list(value)))
            elif isinstance(value, dict):
                selections = extract_line_selections(value)
                if selections:
                    groups.append(SelectionGroup(line=line, selections=list(selections)))

    return groups


# ==========================================
# Merge + de-duplicate
# ==========================================

def merge_groups(groups: list[SelectionGroup], line_market: bool) -> list[SelectionGroup]:
    """Merge groups sharing a canonical line key, keeping first-seen order."""
    merged: dict[str, SelectionGroup] = {}
    for group in groups:
        key = canonical_line_key(group.line, line_market)
        if key not in merged:
            merged[key] = SelectionGroup(line=None if key == DEFAULT_LINE_KEY else group.line)
        merged[key].selections.extend(group.selections)
    return list(merged.values())


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return format_line(value)
    return str(value)


def selection_identity(sel: dict) -> tuple:
    """Identity key: line_id when present, else name/display/odds/line."""
    if sel.get("line_id") is not None:
        return ("line_id", str(sel["line_id"]))
    return (
        "composite",
        f"{_text(sel.get('name'))}|{_text(sel.get('display_name'))}|"
        f"{_text(sel.get('odds'))}|{_text(sel.get('line'))}",
    )


def dedupe_selections(selections: list) -> list[dict]:
    """Drop later duplicates (and anything that is not a record)."""
    seen = set()
    unique = []
    for sel in selections:
        if not isinstance(sel, dict):
            continue
        key = selection_identity(sel)
        if key in seen:
            continue
        seen.add(key)
        unique.append(sel)
    return unique


def normalize_market(market: dict, pattern: Optional[Pattern] = None) -> list[SelectionGroup]:
    """
    Normalize one market's selections into merged, de-duplicated line groups.

    Args:
        market: Raw market record (uses 'name', 'selections', 'market_lines')
        pattern: Compiled line-market classifier

    Returns:
        List of SelectionGroup; empty if the market could not be normalized
    """
    name = ""
    try:
        name = market.get("name") or ""
        primary = groups_from_shape(detect_shape(market.get("selections")))
        secondary = groups_from_market_lines(market.get("market_lines"))
        line_market = is_line_market(name, pattern)

        groups = merge_groups(primary + secondary, line_market)
        for group in groups:
            group.selections = dedupe_selections(group.selections)

        logger.debug(
            f"Groups for {name}: "
            f"{[(g.line, len(g.selections)) for g in groups]}"
        )
        return groups

    except Exception as e:
        logger.error(f"Error normalizing selections for market {name!r}: {e}")
        return []
