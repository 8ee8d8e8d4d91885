"""
Data models for venue API payloads.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

# Wager status values reported by the venue
WAGER_STATUSES = ("open", "inactive", "manually_settled", "cancelled", "void", "closed", "settled")
MATCHING_STATUSES = ("unmatched", "partially_matched", "fully_matched")


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class Tournament:
    """Tournament as listed by the venue."""
    id: str
    name: str
    sport_id: Optional[str] = None
    sport_name: str = ""
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "Tournament":
        sport = data.get("sport") or {}
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            sport_id=_as_str(sport.get("id")),
            sport_name=sport.get("name", ""),
            raw=data,
        )


@dataclass
class SportEvent:
    """Sport event within a tournament."""
    event_id: str
    name: str
    scheduled: Optional[str] = None            # ISO timestamp string from the venue
    status: str = ""
    competitors: list[dict] = field(default_factory=list)
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "SportEvent":
        return cls(
            event_id=str(data["event_id"]),
            name=data.get("name", ""),
            scheduled=data.get("scheduled"),
            status=data.get("status", ""),
            competitors=list(data.get("competitors") or []),
            raw=data,
        )


@dataclass
class AuthSession:
    """Current credential state. Expiry times are epoch seconds."""
    access_token: str
    refresh_token: Optional[str] = None
    access_expires_at: Optional[float] = None
    refresh_expires_at: Optional[float] = None

    @classmethod
    def from_api(cls, data: dict) -> "AuthSession":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            access_expires_at=_as_float(data.get("access_expire_time")),
            refresh_expires_at=_as_float(data.get("refresh_expire_time")),
        )

    def seconds_until_expiry(self, now: Optional[float] = None) -> Optional[float]:
        if self.access_expires_at is None:
            return None
        return self.access_expires_at - (time.time() if now is None else now)


@dataclass
class OrderRecord:
    """One wager as reported by the venue."""
    wager_id: str
    external_id: str
    line_id: str
    odds: Optional[float]
    stake: Optional[float]
    matched_stake: Optional[float] = None
    unmatched_stake: Optional[float] = None
    status: str = ""
    matching_status: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    event_id: Optional[str] = None
    market_id: Optional[str] = None
    raw: dict = field(default_factory=dict)

    @classmethod
    def from_api(cls, data: dict) -> "OrderRecord":
        return cls(
            wager_id=str(data.get("id") or data.get("wager_id") or ""),
            external_id=str(data.get("external_id") or ""),
            line_id=str(data.get("line_id") or ""),
            odds=_as_float(data.get("odds")),
            stake=_as_float(data.get("stake")),
            matched_stake=_as_float(data.get("matched_stake")),
            unmatched_stake=_as_float(data.get("unmatched_stake")),
            status=data.get("status") or "",
            matching_status=data.get("matching_status") or "",
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            event_id=_as_str(data.get("sport_event_id") or data.get("event_id")),
            market_id=_as_str(data.get("market_id")),
            raw=data,
        )


@dataclass
class WagerPage:
    """One page of wager history."""
    wagers: list[OrderRecord] = field(default_factory=list)
    next_cursor: Optional[str] = None
    last_synced_at: Optional[str] = None


@dataclass
class WagerQuery:
    """Wager history query. from/to are epoch seconds."""
    from_ts: int
    to_ts: int
    limit: int = 50
    event_id: Optional[str] = None
    market_id: Optional[str] = None
    matching_status: Optional[str] = None
    status: Optional[str] = None
    cursor: Optional[str] = None

    @classmethod
    def trailing(cls, window: timedelta = timedelta(days=7), **kwargs) -> "WagerQuery":
        """Query covering the last `window` up to now."""
        now = datetime.now(timezone.utc)
        return cls(
            from_ts=int((now - window).timestamp()),
            to_ts=int(now.timestamp()),
            **kwargs,
        )

    def to_params(self) -> dict:
        params: dict[str, Any] = {
            "from": self.from_ts,
            "to": self.to_ts,
            "limit": self.limit,
        }
        optional = {
            "event_id": self.event_id,
            "market_id": self.market_id,
            "matching_status": self.matching_status,
            "status": self.status,
            "cursor": self.cursor,
        }
        params.update({k: v for k, v in optional.items() if v is not None})
        return params
