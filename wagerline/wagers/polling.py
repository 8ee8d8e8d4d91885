"""
Order Polling Engine - keeps the caller's wager list fresh.

A cooperative task fetches the first page of wager history every `interval`
seconds. Failed fetches are retried on their own backoff schedule without
delaying or cancelling the periodic timer.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Optional

from ..exceptions import OrchestratorClosed
from ..venue.models import OrderRecord, WagerQuery

logger = logging.getLogger(__name__)


class OrderPoller:
    """Periodic, cursor-paginated fetch of the caller's wagers."""

    def __init__(
        self,
        client,
        event_id: Optional[str] = None,
        market_id: Optional[str] = None,
        interval: float = 10.0,
        window: timedelta = timedelta(days=7),
        page_size: int = 50,
        max_retries: int = 3,
        retry_base: float = 1.0,
    ):
        """
        Initialize the poller.

        Args:
            client: VenueClient (anything with async get_my_wagers(query))
            event_id: Optional event scope
            market_id: Optional market scope
            interval: Seconds between periodic fetches
            window: Trailing time window queried on every fetch
            page_size: Wagers per page
            max_retries: Failed fetch retries before waiting for the next tick
            retry_base: Retry delay multiplier (delay = 2**n * retry_base)
        """
        self.client = client
        self.event_id = event_id
        self.market_id = market_id
        self.interval = interval
        self.window = window
        self.page_size = page_size
        self.max_retries = max_retries
        self.retry_base = retry_base

        self.orders: list[OrderRecord] = []
        self.last_error: Optional[str] = None
        self.last_synced_at: Optional[str] = None
        self.next_cursor: Optional[str] = None
        self.has_more = True
        self.is_loading = False

        self._retry_count = 0
        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._retry_tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, client, settings: dict, **kwargs) -> "OrderPoller":
        """Create a poller from ConfigLoader.get_polling_settings()."""
        return cls(
            client,
            interval=settings.get("interval", 10.0),
            window=timedelta(days=settings.get("window_days", 7)),
            page_size=settings.get("page_size", 50),
            max_retries=settings.get("max_retries", 3),
            retry_base=settings.get("retry_base", 1.0),
            **kwargs,
        )

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self):
        """Start periodic polling (first fetch happens immediately)."""
        if self.running:
            return
        self._stop.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Order polling started (every {self.interval}s)")

    async def stop(self):
        """Stop the timer and any pending retries."""
        self._stop.set()
        tasks = [t for t in [self._task, *self._retry_tasks] if t and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._task = None
        self._retry_tasks.clear()
        logger.info("Order polling stopped")

    async def _run(self):
        while not self._stop.is_set():
            await self._fetch()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

    async def refresh(self) -> bool:
        """Reset the cursor and replace the current wagers with the first page."""
        self.next_cursor = None
        self.has_more = True
        return await self._fetch()

    async def load_more(self) -> bool:
        """Append the next page; no-op without a cursor or while loading."""
        if not self.has_more or not self.next_cursor or self.is_loading:
            return False
        return await self._fetch(cursor=self.next_cursor, append=True)

    def clear(self):
        """Drop local state and reset cursor/backoff (the timer keeps running)."""
        self.orders = []
        self.last_error = None
        self.last_synced_at = None
        self.next_cursor = None
        self.has_more = True
        self._retry_count = 0

    async def _fetch(self, cursor: Optional[str] = None, append: bool = False) -> bool:
        self.is_loading = True
        self.last_error = None

        try:
            query = WagerQuery.trailing(
                self.window,
                limit=self.page_size,
                event_id=self.event_id,
                market_id=self.market_id,
                cursor=cursor,
            )
            page = await self.client.get_my_wagers(query)
        except OrchestratorClosed as e:
            self.last_error = str(e)
            logger.warning("Order polling skipped: orchestrator closed")
            return False
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Order polling error: {e}")
            self._schedule_retry(cursor, append)
            return False
        finally:
            self.is_loading = False

        if append:
            self.orders.extend(page.wagers)
        else:
            self.orders = list(page.wagers)
        self.next_cursor = page.next_cursor
        self.has_more = bool(page.next_cursor)
        self.last_synced_at = page.last_synced_at
        self._retry_count = 0

        scope = f" for event {self.event_id}" if self.event_id else ""
        logger.info(f"Fetched {len(page.wagers)} wagers{scope}")
        return True

    def _schedule_retry(self, cursor: Optional[str], append: bool):
        self._retry_count += 1
        if self._retry_count >= self.max_retries:
            logger.warning(f"Order polling failed {self._retry_count} times, waiting for next tick")
            return

        delay = (2 ** self._retry_count) * self.retry_base
        logger.info(f"Retrying in {delay}s... ({self._retry_count}/{self.max_retries})")
        task = asyncio.create_task(self._retry_after(delay, cursor, append))
        self._retry_tasks.add(task)
        task.add_done_callback(self._retry_tasks.discard)

    async def _retry_after(self, delay: float, cursor: Optional[str], append: bool):
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=delay)
            return  # stopped while waiting
        except asyncio.TimeoutError:
            pass
        await self._fetch(cursor, append)
