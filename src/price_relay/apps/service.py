"""Main orchestrator for the price relay service.

Wire together the DexScreener poller, the tick cache and repositories, the
broadcast change feed, the relay hub, and the HTTP/WebSocket server. Handle
heartbeat logging and graceful shutdown on SIGINT/SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import TYPE_CHECKING

from price_relay.apps.charts.service import ChartService
from price_relay.apps.poller.cache import BoundedCache
from price_relay.apps.poller.scheduler import PollScheduler
from price_relay.apps.poller.source import TickSource
from price_relay.apps.relay.feed import BroadcastWatcher
from price_relay.apps.relay.hub import RelayHub
from price_relay.apps.relay.server import RelayServer
from price_relay.clients.dexscreener.client import DexScreenerClient
from price_relay.core.exceptions import StoreError
from price_relay.store.repository import BroadcastRepository, ChartRepository, Database

if TYPE_CHECKING:
    from price_relay.apps.config import ServiceConfig

logger = logging.getLogger(__name__)

_HEARTBEAT_INTERVAL_SECONDS = 60


class FeedService:
    """Run the poller, change feed, relay hub and server in one event loop.

    Args:
        config: Immutable service configuration.

    """

    def __init__(self, config: ServiceConfig) -> None:
        """Build every component from the configuration.

        Args:
            config: Service configuration with DB URL, upstream token, and
                cadence parameters.

        """
        self._config = config
        self._db = Database(config.db_url)
        self._charts_repo = ChartRepository(self._db)
        self._broadcasts_repo = BroadcastRepository(self._db)
        self._client = DexScreenerClient(
            base_url=config.base_url, timeout=config.request_timeout
        )
        self.cache = BoundedCache(config.cache_capacity)
        self.scheduler = PollScheduler(
            TickSource(self._client, config.token_mint),
            self.cache,
            self._charts_repo,
            normal_interval=config.normal_interval,
            backoff_interval=config.backoff_interval,
        )
        self.hub = RelayHub(self._broadcasts_repo, snapshot_size=config.snapshot_size)
        self.watcher = BroadcastWatcher(self._broadcasts_repo, config.watch_interval)
        self.charts = ChartService(self._charts_repo, self.cache)
        self._server = RelayServer(self.hub, self.charts)
        self._stop = asyncio.Event()

    async def run(self) -> None:
        """Execute the service until shutdown.

        Steps:
            1. Initialise the database schema.
            2. Start the change feed and the hub's dispatch loop.
            3. Start the poll scheduler (first fetch immediately).
            4. Serve HTTP and WebSocket clients.
            5. On SIGINT/SIGTERM, stop polling, close the feed and server,
               and release the HTTP client and database engine.

        """
        loop = asyncio.get_running_loop()
        loop.add_signal_handler(signal.SIGINT, self._handle_shutdown)
        loop.add_signal_handler(signal.SIGTERM, self._handle_shutdown)

        await self._db.init_db()

        queue = self.watcher.subscribe()
        watcher_task = asyncio.create_task(self.watcher.run())
        dispatch_task = asyncio.create_task(self.hub.run(queue))
        heartbeat_task = asyncio.create_task(self._periodic_heartbeat())

        logger.info("Starting price relay for token %s", self._config.token_mint)
        self.scheduler.start()
        try:
            await self._server.serve(self._config.host, self._config.port, self._stop)
        finally:
            self.watcher.close()
            tasks = (watcher_task, dispatch_task, heartbeat_task)
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await self.hub.close()
            await self.scheduler.stop()
            await self._client.close()
            await self._db.close()
            logger.info(
                "Price relay shut down after %d accepted ticks", self.scheduler.ticks_accepted
            )

    def _handle_shutdown(self) -> None:
        """Set the stop event for graceful exit on SIGINT/SIGTERM."""
        logger.info("Shutdown signal received")
        self._stop.set()

    async def _periodic_heartbeat(self) -> None:
        """Log poller and relay stats at regular intervals for monitoring.

        Emit one structured line with the poll mode, cache size, stored tick
        count, accepted and skipped fires, and subscriber count.
        """
        while not self._stop.is_set():
            await asyncio.sleep(_HEARTBEAT_INTERVAL_SECONDS)
            if self._stop.is_set():
                break
            try:
                stored = await self._charts_repo.get_count()
            except StoreError as exc:
                logger.warning("Heartbeat count failed: %s", exc)
                continue
            logger.info(
                "[PRICE-RELAY] mode=%s cached=%d stored=%d accepted=%d skipped=%d subscribers=%d",
                self.scheduler.mode.value,
                len(self.cache),
                stored,
                self.scheduler.ticks_accepted,
                self.scheduler.fires_skipped,
                self.hub.subscriber_count,
            )
