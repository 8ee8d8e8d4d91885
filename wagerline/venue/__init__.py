"""
Venue API package: request orchestration and endpoint wrappers.
"""

from .client import VenueClient
from .models import AuthSession, OrderRecord, SportEvent, Tournament, WagerPage, WagerQuery
from .orchestrator import RequestOrchestrator

__all__ = [
    "VenueClient",
    "RequestOrchestrator",
    "AuthSession",
    "OrderRecord",
    "SportEvent",
    "Tournament",
    "WagerPage",
    "WagerQuery",
]
