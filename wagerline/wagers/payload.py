"""
Wager payload construction and validation.

Builds the exact place/cancel request bodies the venue expects. All checks
run before any request is made; failures raise ValidationError and are never
retried.
"""

import logging
import math
import random
import re
import string
import time
from typing import Optional

from ..exceptions import ValidationError
from ..odds import OddsLadder, snap_to_ladder

logger = logging.getLogger(__name__)

MIN_STAKE = 0.01
MAX_STAKE = 100_000_000
MAX_EXTERNAL_ID_LENGTH = 100
WAGER_STRATEGIES = ("fillOrKill",)

_EXTERNAL_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_EXTERNAL_ID_INVALID = re.compile(r"[^A-Za-z0-9_-]")
_ALPHABET = string.ascii_lowercase + string.digits


def validate_stake(stake: float) -> None:
    """Raise ValidationError unless 0.01 <= stake <= 100,000,000."""
    if isinstance(stake, bool) or not isinstance(stake, (int, float)) or math.isnan(stake):
        raise ValidationError("Stake must be a valid number")
    if stake <= 0:
        raise ValidationError("Stake must be greater than 0")
    if stake > MAX_STAKE:
        raise ValidationError("Stake exceeds maximum allowed (100,000,000)")
    if stake < MIN_STAKE:
        raise ValidationError("Stake must be at least 0.01")


def validate_external_id(external_id: str) -> None:
    if not isinstance(external_id, str) or not external_id:
        raise ValidationError("external_id is required")
    if len(external_id) > MAX_EXTERNAL_ID_LENGTH:
        raise ValidationError(f"external_id exceeds {MAX_EXTERNAL_ID_LENGTH} characters")
    if not _EXTERNAL_ID_RE.match(external_id):
        raise ValidationError("external_id may only contain A-Z, a-z, 0-9, '_' and '-'")


def generate_external_id(prefix: str = "wager") -> str:
    """
    Generate an idempotency key for a wager.

    Format: {prefix}_{epoch_ms}_{8 random chars}, sanitized to
    [A-Za-z0-9_-] and truncated to 100 characters.
    """
    suffix = "".join(random.choices(_ALPHABET, k=8))
    raw = f"{prefix}_{int(time.time() * 1000)}_{suffix}"
    return _EXTERNAL_ID_INVALID.sub("_", raw)[:MAX_EXTERNAL_ID_LENGTH]


def build_wager_payload(
    line_id: str,
    odds: float,
    stake: float,
    ladder: Optional[OddsLadder] = None,
    external_id: Optional[str] = None,
    wager_strategy: Optional[str] = None,
) -> dict:
    """
    Build a place-wager payload.

    Args:
        line_id: External settlement id of the selection
        odds: Decimal odds (> 1.0), snapped to the ladder before sending
        stake: Stake amount
        ladder: Venue price ladder (None or empty = no snapping)
        external_id: Caller idempotency key (generated when omitted)
        wager_strategy: Optional, only "fillOrKill"

    Returns:
        {line_id, odds, stake, external_id[, wager_strategy]}
    """
    if not line_id or not isinstance(line_id, str):
        raise ValidationError("line_id is required and must be a string")

    if (
        isinstance(odds, bool)
        or not isinstance(odds, (int, float))
        or not math.isfinite(odds)
        or odds <= 1.0
    ):
        raise ValidationError("odds must be a number greater than 1.0")
    snapped = ladder.snap(odds) if ladder is not None else snap_to_ladder(odds, [])
    if snapped != odds:
        logger.debug(f"Odds {odds} snapped to ladder tick {snapped}")

    validate_stake(stake)

    if external_id is None:
        external_id = generate_external_id()
    validate_external_id(external_id)

    payload = {
        "line_id": line_id,
        "odds": snapped,
        "stake": stake,
        "external_id": external_id,
    }
    if wager_strategy is not None:
        if wager_strategy not in WAGER_STRATEGIES:
            raise ValidationError(f"Unsupported wager_strategy: {wager_strategy}")
        payload["wager_strategy"] = wager_strategy
    return payload


def build_cancel_payload(wager_id: Optional[str] = None, external_id: Optional[str] = None) -> dict:
    """Cancel payload; at least one identifier is required."""
    if not wager_id and not external_id:
        raise ValidationError("wager_id or external_id is required to cancel")
    payload = {}
    if wager_id:
        payload["wager_id"] = wager_id
    if external_id:
        payload["external_id"] = external_id
    return payload
