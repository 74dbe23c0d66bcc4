"""Chart and latest-tick query service.

Answer ``get_chart`` and ``get_latest`` from the durable store, falling back
to the in-memory tick cache when the store has nothing for the requested
window. Store failures and bad arguments are reported as ``QueryError``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from price_relay.apps.charts.aggregator import aggregate, window
from price_relay.core.exceptions import QueryError, StoreError
from price_relay.core.models import ChartPage, Granularity, Tick
from price_relay.core.timestamps import now_ms

if TYPE_CHECKING:
    from price_relay.apps.poller.cache import BoundedCache
    from price_relay.core.protocols import TickStore

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 20_000
DEFAULT_PAGE_LIMIT = 10_000
_HTTP_BAD_REQUEST = 400


class ChartService:
    """Serve bucketed chart pages and the most recent tick.

    Args:
        store: Durable tick store.
        cache: In-memory cache of recent ticks.
        clock: Returns the current epoch milliseconds; injectable for tests.

    """

    def __init__(
        self,
        store: TickStore,
        cache: BoundedCache,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the service.

        Args:
            store: Durable tick store.
            cache: In-memory cache of recent ticks.
            clock: Returns the current epoch milliseconds.

        """
        self._store = store
        self._cache = cache
        self._clock = clock

    async def get_chart(
        self,
        granularity: Granularity | str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> ChartPage:
        """Return one page of buckets for a granularity.

        The page is read from the store in ascending time order; if the
        store holds no rows for the window at all, the cached ticks since the
        window cutoff are used instead.

        Args:
            granularity: Granularity or its label (``"1m"``, ``"D"``...).
            page: 1-based page number; values below 1 are treated as 1.
            limit: Rows per page, clamped to ``[1, 20000]``.

        Returns:
            Buckets, the latest raw tick, and pagination info.

        Raises:
            QueryError: On an unknown granularity (400) or a store
                failure (500).

        """
        if isinstance(granularity, str):
            try:
                granularity = Granularity.parse(granularity)
            except ValueError as exc:
                raise QueryError(str(exc), status_code=_HTTP_BAD_REQUEST) from exc

        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_LIMIT)
        offset = (page - 1) * limit
        cutoff = window(granularity, self._clock())

        try:
            rows, total = await self._store.get_points(cutoff, offset, limit)
        except StoreError as exc:
            logger.error("Chart query failed: %s", exc)
            msg = f"Failed to fetch chart data: {exc}"
            raise QueryError(msg) from exc

        raw: list[Tick] = rows if total else self._cache.snapshot_since(cutoff)
        latest = raw[-1] if raw else self._cache.last()
        total = total or len(raw)
        next_page = page + 1 if offset + limit < total else None

        return ChartPage(
            points=tuple(aggregate(raw, granularity)),
            latest=latest,
            page=page,
            next_page=next_page,
        )

    async def get_latest(self) -> Tick | None:
        """Return the most recent tick from the cache, else from the store.

        Returns:
            The newest tick, or None when there is no data at all.

        Raises:
            QueryError: If the store lookup fails.

        """
        latest = self._cache.last()
        if latest is not None:
            return latest
        try:
            return await self._store.get_latest()
        except StoreError as exc:
            logger.error("Latest query failed: %s", exc)
            msg = f"Failed to fetch latest tick: {exc}"
            raise QueryError(msg) from exc
