"""
Odds Conversion Module

Pure functions for converting between American (moneyline) and decimal odds,
plus snapping decimal prices onto the venue's allowed price ladder.

- american_to_decimal / decimal_to_american: exact conversions
- parse_american: signed string input ("-146", "+150")
- snap_to_ladder: nearest allowed tick (NumPy vectorized)
"""

import logging
import math
import re
from typing import Iterable, Optional, Sequence

import numpy as np

from .exceptions import InvalidOdds

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    """Round .5 toward +infinity (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def american_to_decimal(american: float) -> float:
    """
    Convert American odds to decimal odds.

    Args:
        american: Moneyline value (e.g., +150, -200)

    Returns:
        Decimal odds (e.g., 2.5, 1.5)
    """
    if isinstance(american, bool) or not isinstance(american, (int, float)):
        raise InvalidOdds(f"Invalid American odds: {american!r}")
    if not math.isfinite(american) or american == 0:
        raise InvalidOdds(f"Invalid American odds: {american!r}")
    if american > 0:
        return 1 + american / 100
    return 1 + 100 / abs(american)


def decimal_to_american(decimal_odds: float) -> int:
    """
    Convert decimal odds to American odds.

    Args:
        decimal_odds: Decimal odds greater than 1.0

    Returns:
        Moneyline value, positive when decimal_odds >= 2
    """
    if isinstance(decimal_odds, bool) or not isinstance(decimal_odds, (int, float)):
        raise InvalidOdds(f"Invalid decimal odds: {decimal_odds!r}")
    if not math.isfinite(decimal_odds) or decimal_odds <= 1:
        raise InvalidOdds(f"Invalid decimal odds: {decimal_odds!r}")
    if decimal_odds >= 2:
        return _round_half_up((decimal_odds - 1) * 100)
    return _round_half_up(-100 / (decimal_odds - 1))


_NON_NUMERIC = re.compile(r"[^\d.]")


def parse_american(text: str) -> int:
    """
    Parse American odds typed by a user, keeping the sign.

    "-146" -> -146, "+150" -> 150, " 120 " -> 120
    """
    if not isinstance(text, str):
        raise InvalidOdds(f"Invalid American odds: {text!r}")
    trimmed = text.strip()
    sign = -1 if trimmed.startswith("-") else 1
    digits = _NON_NUMERIC.sub("", trimmed)
    if not digits:
        raise InvalidOdds(f"Invalid American odds: {text!r}")
    try:
        value = float(digits)
    except ValueError as e:
        raise InvalidOdds(f"Invalid American odds: {text!r}") from e
    if not math.isfinite(value) or value == 0:
        raise InvalidOdds(f"Invalid American odds: {text!r}")
    return sign * _round_half_up(value)


def parse_display_odds(display: Optional[str]) -> Optional[int]:
    """Parse a display string like "+150" into an int, None if unreadable."""
    if not display:
        return None
    cleaned = re.sub(r"[^\d+-]", "", display)
    match = re.match(r"^[+-]?\d+", cleaned)
    return int(match.group(0)) if match else None


def format_american(american: int) -> str:
    """Format moneyline with explicit sign: 150 -> "+150"."""
    return f"+{american}" if american > 0 else str(american)


def snap_to_ladder(value: float, ladder: Sequence[float]) -> float:
    """
    Snap a decimal price to the nearest tick of an ascending ladder.

    Ties resolve to the first (smaller) tick. An empty ladder is a no-op.
    """
    if len(ladder) == 0:
        logger.warning("Odds ladder not loaded, returning original odds")
        return value
    ticks = np.asarray(ladder, dtype=float)
    idx = int(np.argmin(np.abs(ticks - value)))
    return float(ticks[idx])


def calculate_profit(decimal_odds: float, stake: float) -> float:
    """Potential profit for a winning wager."""
    return (decimal_odds - 1) * stake


def calculate_return(decimal_odds: float, stake: float) -> float:
    """Total return (stake + profit) for a winning wager."""
    return decimal_odds * stake


class OddsLadder:
    """Venue price ladder owned by a WagerDesk instance."""

    def __init__(self, ticks: Optional[Iterable[float]] = None):
        self._ticks: list[float] = []
        if ticks is not None:
            self.set(ticks)

    def set(self, ticks: Iterable[float]) -> None:
        """Replace the ladder with a sorted copy of ticks."""
        self._ticks = sorted(float(t) for t in ticks)
        logger.info(f"Odds ladder cached: {len(self._ticks)} ticks")

    def clear(self) -> None:
        self._ticks = []

    @property
    def ticks(self) -> list[float]:
        return list(self._ticks)

    def __len__(self) -> int:
        """Number of ticks loaded (0 means no ladder)."""
        return len(self._ticks)

    def snap(self, decimal_odds: float) -> float:
        return snap_to_ladder(decimal_odds, self._ticks)
