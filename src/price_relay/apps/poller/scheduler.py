"""Adaptive poll scheduler with rate-limit backoff and overlap protection.

Drive a ``TickSource`` from a single event-loop timer. After every attempt
the next fire is scheduled at the cadence implied by the current mode:
``NORMAL`` (20 s by default) or ``BACKOFF`` (60 s by default). An HTTP 429
switches to backoff; the first successful fetch switches straight back.
Transient failures leave the mode alone. A fire that arrives while a fetch
is still outstanding is coalesced into a reschedule, so at most one fetch is
ever in flight.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from price_relay.apps.poller.source import FetchOutcome, RateLimited, SoftFailure, Success
from price_relay.core.exceptions import StoreError
from price_relay.core.models import PollMode

if TYPE_CHECKING:
    from price_relay.apps.poller.cache import BoundedCache
    from price_relay.apps.poller.source import TickSource
    from price_relay.core.models import Tick
    from price_relay.core.protocols import TickStore

logger = logging.getLogger(__name__)

DEFAULT_NORMAL_INTERVAL = 20.0
DEFAULT_BACKOFF_INTERVAL = 60.0


class PollScheduler:
    """Own the poll timer, the backoff state machine, and the in-flight guard.

    Only one scheduler should run per process: the backoff state describes a
    single upstream identity.

    Args:
        source: Performs and classifies one upstream fetch.
        cache: Receives every accepted tick.
        store: Durable store; write failures are logged and ignored.
        normal_interval: Seconds between polls in ``NORMAL`` mode.
        backoff_interval: Seconds between polls in ``BACKOFF`` mode.

    """

    def __init__(
        self,
        source: TickSource,
        cache: BoundedCache,
        store: TickStore,
        *,
        normal_interval: float = DEFAULT_NORMAL_INTERVAL,
        backoff_interval: float = DEFAULT_BACKOFF_INTERVAL,
    ) -> None:
        """Initialize the scheduler in ``NORMAL`` mode with no timer armed.

        Args:
            source: Performs and classifies one upstream fetch.
            cache: Receives every accepted tick.
            store: Durable store for accepted ticks.
            normal_interval: Seconds between polls in ``NORMAL`` mode.
            backoff_interval: Seconds between polls in ``BACKOFF`` mode.

        """
        self._source = source
        self._cache = cache
        self._store = store
        self._normal_interval = normal_interval
        self._backoff_interval = backoff_interval
        self._mode = PollMode.NORMAL
        self._in_progress = False
        self._running = False
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[float]] = set()
        self.next_delay: float | None = None
        self.ticks_accepted = 0
        self.fires_skipped = 0

    @property
    def mode(self) -> PollMode:
        """Return the current poll mode."""
        return self._mode

    @property
    def in_progress(self) -> bool:
        """Return True while a fetch is outstanding."""
        return self._in_progress

    @property
    def current_interval(self) -> float:
        """Return the poll interval implied by the current mode, in seconds."""
        if self._mode is PollMode.BACKOFF:
            return self._backoff_interval
        return self._normal_interval

    def start(self) -> None:
        """Arm the timer so the first fetch happens immediately.

        Must be called from within a running event loop.
        """
        self._running = True
        self._schedule(0)
        logger.info(
            "Poll scheduler started (normal=%.0fs, backoff=%.0fs)",
            self._normal_interval,
            self._backoff_interval,
        )

    async def stop(self) -> None:
        """Disarm the timer and wait for any in-flight tick to finish."""
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("Poll scheduler stopped")

    async def tick(self) -> float:
        """Run one timer fire and schedule the next.

        Returns:
            The delay in seconds until the next scheduled fire.

        """
        if self._in_progress:
            delay = self.current_interval
            self.fires_skipped += 1
            logger.info("Fetch still in progress, skipping this fire (next in %.0fs)", delay)
            self._schedule(delay)
            return delay

        self._in_progress = True
        try:
            outcome = await self._source.fetch_one()
        except Exception as exc:
            logger.exception("Tick source raised unexpectedly")
            outcome = SoftFailure(f"unexpected error: {exc!r}")
        finally:
            self._in_progress = False

        delay = self._apply(outcome)
        self._schedule(delay)
        if isinstance(outcome, Success):
            await self._persist(outcome.tick)
        return delay

    def _apply(self, outcome: FetchOutcome) -> float:
        """Advance the state machine for one outcome and return the next delay.

        Accepted ticks go to the cache here; persisting them happens after the
        next fire is armed.

        Args:
            outcome: Classified result of the fetch.

        Returns:
            Seconds until the next fire.

        """
        if isinstance(outcome, RateLimited):
            if self._mode is not PollMode.BACKOFF:
                logger.warning(
                    "Upstream rate limited, backing off to %.0fs", self._backoff_interval
                )
            self._mode = PollMode.BACKOFF
            return self._backoff_interval

        if isinstance(outcome, Success):
            if self._mode is PollMode.BACKOFF:
                logger.info("Fetch succeeded, leaving backoff")
                self._mode = PollMode.NORMAL
            self._cache.append(outcome.tick)
            self.ticks_accepted += 1
            return self._normal_interval

        logger.warning("Fetch failed: %s", outcome.reason)
        return self.current_interval

    async def _persist(self, tick: Tick) -> None:
        """Write a tick to the durable store, logging any failure."""
        try:
            await self._store.insert_point(tick)
        except StoreError as exc:
            logger.error("Failed to persist tick: %s", exc)

    def _schedule(self, delay: float) -> None:
        """Replace the pending timer with one firing after ``delay`` seconds."""
        self.next_delay = delay
        if not self._running:
            return
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        """Start a tick task when the timer fires."""
        self._timer = None
        task = asyncio.create_task(self.tick())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
