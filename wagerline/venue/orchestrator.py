"""
Resilient Request Orchestrator - the single admission point for venue calls.

Responsibilities:
- Bounded concurrency (FIFO admission, default 3 in flight)
- Rate-limit awareness from the X-RateLimit-Remaining header
- Retry with exponential backoff + jitter for 429 / 5xx / network errors
- Single-flight access token refresh, reactive (401) and proactive (before expiry)
"""

import asyncio
import logging
import random
from typing import Any, Optional

import httpx

from ..exceptions import (
    AuthError,
    OrchestratorClosed,
    RateLimitError,
    VenueError,
    WagerlineError,
)
from .config import (
    AUTH_EXPIRED_CODES,
    BASE_URL,
    DEFAULT_HEADERS,
    ERROR_HINTS,
    LOGIN_ENDPOINT,
    RATE_LIMIT_HEADER,
    REFRESH_ENDPOINT,
)
from .models import AuthSession

logger = logging.getLogger(__name__)


def _error_envelope(response: httpx.Response) -> tuple[Optional[str], Optional[str]]:
    """Extract (code, message) from a {error, message} body, if any."""
    try:
        body = response.json()
    except ValueError:
        return None, None
    if not isinstance(body, dict) or not body.get("error"):
        return None, None
    code = str(body["error"])
    return code, body.get("message") or code


class RequestOrchestrator:
    """
    Executes every upstream call with bounded concurrency, retries and
    token refresh. Use as an async context manager or call start()/close().
    """

    def __init__(
        self,
        base_url: str = BASE_URL,
        max_concurrent: int = 3,
        max_attempts: int = 3,
        rate_limit_low_water: int = 2,
        rate_limit_pause: float = 1.0,
        backoff_base: float = 1.0,
        backoff_max: float = 30.0,
        refresh_lead: float = 60.0,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            base_url: Venue (or relay) base URL
            max_concurrent: Maximum requests in flight
            max_attempts: Attempts per logical request for transient failures
            rate_limit_low_water: Pause before requests once remaining quota drops below this
            rate_limit_pause: Seconds to pause when under the low-water mark
            backoff_base: First backoff delay in seconds (doubles per attempt)
            backoff_max: Backoff ceiling in seconds
            refresh_lead: Seconds before access expiry to refresh proactively
            timeout: HTTP timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url
        self.max_concurrent = max_concurrent
        self.max_attempts = max_attempts
        self.rate_limit_low_water = rate_limit_low_water
        self.rate_limit_pause = rate_limit_pause
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.refresh_lead = refresh_lead
        self.timeout = timeout
        self._transport = transport

        self.client: Optional[httpx.AsyncClient] = None
        self.session: Optional[AuthSession] = None
        self.rate_limit_remaining: int = 100

        # Counters for diagnostics
        self.in_flight = 0
        self.refresh_count = 0
        self.throttled = 0

        self._slots = asyncio.Semaphore(max_concurrent)
        self._closed = asyncio.Event()
        self._refresh_task: Optional[asyncio.Task] = None
        self._proactive_task: Optional[asyncio.Task] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def start(self):
        """Start the HTTP client."""
        logger.info(f"Starting venue HTTP client ({self.base_url})")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=DEFAULT_HEADERS,
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self):
        """Stop background refresh, abort pending retries and close the client."""
        self._closed.set()
        for task in (self._proactive_task, self._refresh_task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except (asyncio.CancelledError, WagerlineError):
                    pass
        self._proactive_task = None
        self._refresh_task = None
        if self.client:
            await self.client.aclose()
            self.client = None
        logger.info("Venue HTTP client closed")

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @property
    def is_authenticated(self) -> bool:
        return self.session is not None

    # ==========================================
    # Authentication
    # ==========================================

    async def authenticate(self, access_key: str, secret_key: str) -> AuthSession:
        """Log in and start the proactive refresh task."""
        logger.info("Attempting authentication with venue API...")
        try:
            body = await self.request(
                "POST",
                LOGIN_ENDPOINT,
                json={"access_key": access_key, "secret_key": secret_key},
                auth=False,
            )
        except AuthError:
            raise
        except VenueError as e:
            raise AuthError(
                f"Authentication failed: {e.message}", code=e.code, status=e.status, hint=e.hint
            ) from e

        payload = (body or {}).get("data") or {}
        if not payload.get("access_token"):
            raise AuthError("Authentication failed: No access token received")

        self.session = AuthSession.from_api(payload)
        logger.info("Authentication successful")
        self._start_proactive_refresh()
        return self.session

    async def refresh_session(self, stale_token: Optional[str] = None) -> AuthSession:
        """
        Refresh the access token, single-flight.

        Concurrent callers share one refresh. A caller whose rejected token
        has already been replaced gets the current session without a new
        refresh.
        """
        if self.session is None:
            raise AuthError("Not authenticated. Please authenticate first.")
        if stale_token is not None and self.session.access_token != stale_token:
            return self.session

        if self._refresh_task is None or self._refresh_task.done():
            self._refresh_task = asyncio.create_task(self._do_refresh())
        try:
            return await asyncio.shield(self._refresh_task)
        except asyncio.CancelledError:
            # close() cancelled the shared refresh, not this caller
            if self._closed.is_set():
                raise OrchestratorClosed("Request orchestrator is closed") from None
            raise

    async def _do_refresh(self) -> AuthSession:
        session = self.session
        if session is None or not session.refresh_token:
            self.session = None
            raise AuthError("Session expired and no refresh token is available", code="token_expired",
                            hint=ERROR_HINTS.get("token_expired"))

        self.refresh_count += 1
        logger.info("Refreshing access token...")
        try:
            body = await self.request(
                "POST",
                REFRESH_ENDPOINT,
                json={"refresh_token": session.refresh_token},
                auth=False,
            )
        except VenueError as e:
            self.session = None
            raise AuthError(
                f"Token refresh failed: {e.message}", code=e.code, status=e.status,
                hint=e.hint or ERROR_HINTS.get("token_expired"),
            ) from e

        payload = (body or {}).get("data") or {}
        if not payload.get("access_token"):
            self.session = None
            raise AuthError("Token refresh failed: No access token received", code="token_expired",
                            hint=ERROR_HINTS.get("token_expired"))

        payload.setdefault("refresh_token", session.refresh_token)
        self.session = AuthSession.from_api(payload)
        logger.info("Access token refreshed")
        return self.session

    def _start_proactive_refresh(self):
        if self._proactive_task is None or self._proactive_task.done():
            self._proactive_task = asyncio.create_task(self._proactive_refresh_loop())

    async def _proactive_refresh_loop(self):
        """Refresh refresh_lead seconds before the access token expires."""
        while not self._closed.is_set():
            session = self.session
            if session is None:
                return
            remaining = session.seconds_until_expiry()
            if remaining is None:
                logger.debug("Access token has no expiry, proactive refresh disabled")
                return

            await self._sleep(max(0.0, remaining - self.refresh_lead))
            if self._closed.is_set():
                return
            if self.session is not session:
                continue  # replaced by a reactive refresh while sleeping

            try:
                refreshed = await self.refresh_session()
            except WagerlineError as e:
                logger.error(f"Proactive token refresh failed: {e}")
                return

            left = refreshed.seconds_until_expiry()
            if left is not None and left <= self.refresh_lead:
                logger.warning("Refreshed token expires within the refresh lead, stopping proactive refresh")
                return

    # ==========================================
    # Request execution
    # ==========================================

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Optional[Any] = None,
        auth: bool = True,
    ) -> Any:
        """
        Execute one logical request and return the decoded JSON body.

        Raises:
            VenueError: non-retryable 4xx, or the last error after retries
            RateLimitError: still rate limited after max_attempts
            AuthError: not authenticated, or token refresh failed
            OrchestratorClosed: close() was called before completion
        """
        attempts = 0
        refreshed = False

        while True:
            self._ensure_open()
            if auth and self.session is None:
                raise AuthError("Not authenticated. Please authenticate first.")
            token = self.session.access_token if auth else None

            try:
                response = await self._send(method, path, params, json, token)
            except httpx.TransportError as e:
                attempts += 1
                if attempts >= self.max_attempts:
                    raise VenueError(f"Network error calling {path}: {e}") from e
                logger.warning(f"Network error calling {path}: {e}. Retrying... ({attempts}/{self.max_attempts})")
                await self._backoff(attempts)
                continue

            status = response.status_code

            if status == 429:
                attempts += 1
                if attempts >= self.max_attempts:
                    raise self._venue_error(response, RateLimitError)
                logger.warning(f"Rate limited on {path}. Retrying... ({attempts}/{self.max_attempts})")
                await self._backoff(attempts)
                continue

            if auth and self._is_auth_expired(response):
                if refreshed:
                    raise self._venue_error(response, AuthError)
                refreshed = True
                logger.info(f"Access token rejected on {path}, refreshing")
                await self.refresh_session(stale_token=token)
                continue

            if status >= 500:
                attempts += 1
                if attempts >= self.max_attempts:
                    raise self._venue_error(response)
                logger.warning(f"Server error {status} on {path}. Retrying... ({attempts}/{self.max_attempts})")
                await self._backoff(attempts)
                continue

            if status >= 400:
                raise self._venue_error(response)

            return self._decode(response)

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[dict],
        json: Optional[Any],
        token: Optional[str],
    ) -> httpx.Response:
        if self.client is None:
            await self.start()

        headers = {"Authorization": f"Bearer {token}"} if token else None
        async with self._slots:
            self._ensure_open()
            await self._throttle()
            self.in_flight += 1
            try:
                logger.debug(f"{method} {path} params={params}")
                response = await self.client.request(method, path, params=params, json=json, headers=headers)
            finally:
                self.in_flight -= 1

        self._update_rate_limit(response)
        return response

    async def _throttle(self):
        if self.rate_limit_remaining < self.rate_limit_low_water:
            self.throttled += 1
            logger.info(f"Rate limit approaching ({self.rate_limit_remaining} left), sleeping {self.rate_limit_pause}s...")
            await self._sleep(self.rate_limit_pause)
            self._ensure_open()

    def _update_rate_limit(self, response: httpx.Response):
        remaining = response.headers.get(RATE_LIMIT_HEADER)
        if remaining is None:
            return
        try:
            self.rate_limit_remaining = int(remaining)
        except ValueError:
            logger.debug(f"Ignoring malformed {RATE_LIMIT_HEADER}: {remaining!r}")

    async def _backoff(self, attempt: int):
        delay = self.backoff_base * (2 ** (attempt - 1))
        delay = min(self.backoff_max, delay + random.uniform(0, delay / 2))
        await self._sleep(delay)
        self._ensure_open()

    async def _sleep(self, delay: float):
        """Sleep that wakes early when the orchestrator is closed."""
        if delay <= 0:
            await asyncio.sleep(0)
            return
        try:
            await asyncio.wait_for(self._closed.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    def _ensure_open(self):
        if self._closed.is_set():
            raise OrchestratorClosed("Request orchestrator is closed")

    @staticmethod
    def _is_auth_expired(response: httpx.Response) -> bool:
        if response.status_code == 401:
            return True
        if response.status_code < 400:
            return False
        code, _ = _error_envelope(response)
        return code in AUTH_EXPIRED_CODES

    @staticmethod
    def _venue_error(response: httpx.Response, error_cls: type = VenueError) -> VenueError:
        code, message = _error_envelope(response)
        if error_cls is VenueError and code in AUTH_EXPIRED_CODES:
            error_cls = AuthError
        message = message or response.reason_phrase or f"HTTP {response.status_code}"
        return error_cls(
            f"API request failed: {message}",
            code=code,
            status=response.status_code,
            hint=ERROR_HINTS.get(code) if code else None,
        )

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError as e:
            raise VenueError(
                f"Invalid JSON from {response.request.url.path}", status=response.status_code
            ) from e
        # Some relays answer 200 with an error envelope
        if isinstance(body, dict) and body.get("error") and "data" not in body:
            raise self._venue_error(response)
        return body
