"""
Order enrichment - human-readable labels for raw wager records.

Labels come from the selection index; a miss falls back to placeholders.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..catalog.selection_index import SelectionIndex
from ..exceptions import InvalidOdds
from ..odds import decimal_to_american, format_american
from ..venue.models import OrderRecord

UNKNOWN_MARKET = "Unknown Market"
UNKNOWN_EVENT = "Unknown Event"
UNKNOWN_SELECTION = "Unknown Selection"

_MARKET_PREFIX = re.compile(r"^(MM_|Market_|Mkt_)", re.IGNORECASE)


@dataclass
class EnrichedOrder:
    """A wager plus display labels."""
    order: OrderRecord
    wager_type: str          # market label
    wager_market: str        # event label (or "Line ID: ..." on a miss)
    selection_name: str
    formatted_odds: str
    formatted_stake: str


def clean_market_name(name: str) -> str:
    """Strip internal prefixes and underscores: "MM_Run_Line" -> "Run Line"."""
    return _MARKET_PREFIX.sub("", name).replace("_", " ").strip()


def format_event_name(name: str, scheduled: Optional[str] = None) -> str:
    """Event name with its start time, e.g. "A vs B Sat, Oct 18, 7:05 PM"."""
    if not scheduled:
        return name
    try:
        start = datetime.fromisoformat(scheduled.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return name
    hour = start.hour % 12 or 12
    return f"{name} {start:%a}, {start:%b} {start.day}, {hour}:{start:%M} {start:%p}"


def format_order_odds(odds: Optional[float]) -> str:
    """American odds with sign, or the decimal price if it cannot convert."""
    if odds is None:
        return "-"
    try:
        return format_american(decimal_to_american(odds))
    except InvalidOdds:
        return f"{odds:.2f}"


def format_stake(stake: Optional[float]) -> str:
    if stake is None:
        return "-"
    return str(int(stake)) if float(stake).is_integer() else str(stake)


def enrich_order(order: OrderRecord, index: SelectionIndex) -> EnrichedOrder:
    """Label a wager by looking its line_id up in the index."""
    record = index.find(external_id=order.line_id) if order.line_id else None

    if record is None:
        wager_type = UNKNOWN_MARKET
        wager_market = f"Line ID: {order.line_id}"
        selection_name = UNKNOWN_SELECTION
    else:
        wager_type = clean_market_name(record.market_name) or UNKNOWN_MARKET
        wager_market = format_event_name(record.event_name, record.scheduled) or UNKNOWN_EVENT
        selection_name = record.name or UNKNOWN_SELECTION

    return EnrichedOrder(
        order=order,
        wager_type=wager_type,
        wager_market=wager_market,
        selection_name=selection_name,
        formatted_odds=format_order_odds(order.odds),
        formatted_stake=format_stake(order.stake),
    )


def enrich_orders(orders: list[OrderRecord], index: SelectionIndex) -> list[EnrichedOrder]:
    return [enrich_order(order, index) for order in orders]
