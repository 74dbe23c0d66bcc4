"""Change feed for the broadcasts table.

Poll ``hub_broadcasts`` and turn differences between consecutive reads into
``Insert`` and ``Delete`` events, pushed onto one ``asyncio.Queue`` per
subscriber. Delivery is at-least-once from the consumer's point of view: a
row may be seen by a snapshot query before or after its event arrives.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from price_relay.core.exceptions import StoreError

if TYPE_CHECKING:
    from price_relay.store.repository import BroadcastRepository

logger = logging.getLogger(__name__)

DEFAULT_WATCH_INTERVAL = 2.0


@dataclass(frozen=True)
class Insert:
    """A row was added to the watched table."""

    row: dict[str, Any]


@dataclass(frozen=True)
class Delete:
    """A row was removed from the watched table.

    ``row`` holds whatever is known about the old row; it may lack ``id``
    when the feed cannot supply the durable identity.
    """

    row: dict[str, Any]


ChangeEvent = Insert | Delete


class BroadcastWatcher:
    """Detect inserts and deletes on the broadcasts table by periodic diffing.

    The first read establishes the baseline and emits nothing. Each later
    read emits an ``Insert`` for every new id (in id order) and a ``Delete``
    carrying the last known row for every id that disappeared.

    Args:
        repo: Broadcast repository to read from.
        poll_interval: Seconds between reads.

    """

    def __init__(
        self,
        repo: BroadcastRepository,
        poll_interval: float = DEFAULT_WATCH_INTERVAL,
    ) -> None:
        """Initialize the watcher with no baseline and no subscribers.

        Args:
            repo: Broadcast repository to read from.
            poll_interval: Seconds between reads.

        """
        self._repo = repo
        self._poll_interval = poll_interval
        self._known: dict[int, dict[str, Any]] | None = None
        self._queues: list[asyncio.Queue[ChangeEvent]] = []
        self._closed = False

    def subscribe(self) -> asyncio.Queue[ChangeEvent]:
        """Return a new queue that will receive every subsequent event."""
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._queues.append(queue)
        return queue

    async def poll_once(self) -> list[ChangeEvent]:
        """Read the table once, publish the differences, and return them.

        Returns:
            Events emitted by this read (empty on the baseline read).

        Raises:
            StoreError: If the table cannot be read.

        """
        rows = await self._repo.list_all()
        current = {int(row["id"]): row for row in rows}

        if self._known is None:
            self._known = current
            logger.info("Change feed baseline: %d broadcasts", len(current))
            return []

        events: list[ChangeEvent] = [
            Insert(current[row_id]) for row_id in sorted(current.keys() - self._known.keys())
        ]
        events.extend(
            Delete(self._known[row_id]) for row_id in sorted(self._known.keys() - current.keys())
        )
        self._known = current

        for event in events:
            for queue in self._queues:
                queue.put_nowait(event)
        if events:
            logger.debug("Change feed emitted %d events", len(events))
        return events

    async def run(self) -> None:
        """Poll until closed or cancelled, logging read failures."""
        while not self._closed:
            try:
                await self.poll_once()
            except StoreError as exc:
                logger.warning("Change feed read failed: %s", exc)
            await asyncio.sleep(self._poll_interval)

    def close(self) -> None:
        """Stop the polling loop after the current iteration."""
        self._closed = True
