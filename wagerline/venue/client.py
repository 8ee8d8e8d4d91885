"""
Venue API client - typed wrappers over the market-maker endpoints.

Every call goes through the RequestOrchestrator.
"""

import logging
from typing import Any

from .config import (
    CANCEL_WAGER_ENDPOINT,
    EVENTS_ENDPOINT,
    MARKETS_ENDPOINT,
    ODDS_LADDER_ENDPOINT,
    PLACE_WAGER_ENDPOINT,
    TOURNAMENTS_ENDPOINT,
    WAGER_HISTORY_ENDPOINT,
)
from .models import OrderRecord, SportEvent, Tournament, WagerPage, WagerQuery
from .orchestrator import RequestOrchestrator

logger = logging.getLogger(__name__)


def _data(body: Any) -> Any:
    """Unwrap the venue's {"data": ...} envelope."""
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body


def _list_under(payload: Any, *keys: str) -> list:
    """Return the first list found under keys (or payload itself if a list)."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in keys:
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


class VenueClient:
    """Market-maker API of the exchange."""

    def __init__(self, orchestrator: RequestOrchestrator):
        self.orchestrator = orchestrator

    async def get_tournaments(self) -> list[Tournament]:
        """List tournaments that have active events."""
        body = await self.orchestrator.request(
            "GET", TOURNAMENTS_ENDPOINT, params={"has_active_events": "true"}
        )
        tournaments = []
        for item in _list_under(_data(body), "tournaments"):
            try:
                tournaments.append(Tournament.from_api(item))
            except (KeyError, TypeError, AttributeError) as e:
                logger.error(f"Error parsing tournament: {e}")
        return tournaments

    async def get_events(self, tournament_id: str) -> list[SportEvent]:
        """List sport events of a tournament."""
        body = await self.orchestrator.request(
            "GET", EVENTS_ENDPOINT, params={"tournament_id": tournament_id}
        )
        events = []
        for item in _list_under(_data(body), "sport_events"):
            try:
                events.append(SportEvent.from_api(item))
            except (KeyError, TypeError, AttributeError) as e:
                logger.error(f"Error parsing sport event: {e}")
        return events

    async def get_markets(self, event_id: str) -> list[dict]:
        """Raw markets of an event (selections are shape-polymorphic)."""
        body = await self.orchestrator.request(
            "GET", MARKETS_ENDPOINT, params={"event_id": event_id}
        )
        markets = _list_under(_data(body), "markets")
        if not markets:
            logger.debug(f"No markets found for event {event_id}")
        return markets

    async def get_odds_ladder(self) -> list[float]:
        """Allowed decimal prices."""
        body = await self.orchestrator.request("GET", ODDS_LADDER_ENDPOINT)
        ticks = []
        for tick in _list_under(_data(body), "odds_ladder", "ladder", "odds"):
            try:
                ticks.append(float(tick))
            except (TypeError, ValueError):
                logger.debug(f"Ignoring non-numeric ladder tick: {tick!r}")
        return ticks

    async def place_wager(self, payload: dict) -> dict:
        """Submit a wager payload built by wagers.payload.build_wager_payload."""
        logger.info(f"Placing wager {payload.get('external_id')} on line {payload.get('line_id')}")
        body = await self.orchestrator.request("POST", PLACE_WAGER_ENDPOINT, json=payload)
        return _data(body) or {}

    async def cancel_wager(self, payload: dict) -> dict:
        """Cancel a wager by wager_id or external_id."""
        logger.info(f"Cancelling wager {payload}")
        body = await self.orchestrator.request("POST", CANCEL_WAGER_ENDPOINT, json=payload)
        return _data(body) or {}

    async def get_my_wagers(self, query: WagerQuery) -> WagerPage:
        """One page of the caller's wager history."""
        body = await self.orchestrator.request(
            "GET", WAGER_HISTORY_ENDPOINT, params=query.to_params()
        )
        payload = _data(body)
        if not isinstance(payload, dict):
            payload = {"wagers": _list_under(payload)}

        wagers = [
            OrderRecord.from_api(item)
            for item in _list_under(payload, "wagers")
            if isinstance(item, dict)
        ]
        return WagerPage(
            wagers=wagers,
            next_cursor=payload.get("next_cursor") or None,
            last_synced_at=payload.get("last_synced_at"),
        )
