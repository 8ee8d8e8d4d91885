"""
wagerline - Core Package

Market-maker toolkit for a sports betting exchange: turns the venue's
inconsistently shaped market catalog into a canonical tree, indexes
wager-eligible selections by line id, and keeps wager state fresh through
resilient, rate-limit aware polling.

Main Components:
- ConfigLoader: YAML-based configuration management
- RequestOrchestrator: bounded, retrying, token-refreshing HTTP admission
- HierarchyBuilder / SelectionIndex: catalog tree and lookup index
- OrderPoller: cursor-paginated wager history polling
- WagerDesk: service object tying it all together
"""

__version__ = "1.0.0"

from wagerline.config import ConfigLoader
from wagerline.catalog import HierarchyBuilder, SelectionIndex, SelectionRecord, TreeNode
from wagerline.desk import WagerDesk
from wagerline.venue import RequestOrchestrator, VenueClient
from wagerline.wagers import OrderPoller

__all__ = [
    "ConfigLoader",
    "HierarchyBuilder",
    "SelectionIndex",
    "SelectionRecord",
    "TreeNode",
    "WagerDesk",
    "RequestOrchestrator",
    "VenueClient",
    "OrderPoller",
]
