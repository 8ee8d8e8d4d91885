"""
Wager package: payload building, order polling and enrichment.
"""

from .enrichment import EnrichedOrder, enrich_order, enrich_orders
from .payload import build_cancel_payload, build_wager_payload, generate_external_id, validate_stake
from .polling import OrderPoller

__all__ = [
    "EnrichedOrder",
    "enrich_order",
    "enrich_orders",
    "build_cancel_payload",
    "build_wager_payload",
    "generate_external_id",
    "validate_stake",
    "OrderPoller",
]
