"""
Exception types shared across the wagerline package.

Validation errors are raised before any request is made and are never
retried. VenueError and its subclasses carry the venue's original error code
plus a static hint for display.
"""

from typing import Optional


class WagerlineError(Exception):
    """Base class for all wagerline errors."""


class InvalidOdds(WagerlineError, ValueError):
    """Odds value cannot be converted or parsed."""


class ValidationError(WagerlineError, ValueError):
    """Wager input rejected locally (stake, line id, external id...)."""


class OrchestratorClosed(WagerlineError):
    """Raised for requests issued or retried after the orchestrator closed."""


class VenueError(WagerlineError):
    """Upstream request failed with a venue error or HTTP status."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status: Optional[int] = None,
        hint: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status
        self.hint = hint

    def __str__(self) -> str:
        text = self.message
        if self.code:
            text = f"[{self.code}] {text}"
        if self.hint:
            text = f"{text} ({self.hint})"
        return text


class RateLimitError(VenueError):
    """Venue kept answering 429 after all retries."""


class AuthError(VenueError):
    """Authentication failed or could not be refreshed."""
