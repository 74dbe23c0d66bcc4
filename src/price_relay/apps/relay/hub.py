"""Fan-out hub for live relay subscribers.

Track the open subscriber connections, greet each new one with a snapshot of
recent broadcasts, and forward every change-feed event to all ready
connections. Delivery is best-effort: a connection that cannot take a
message right away misses it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

from price_relay.apps.relay.feed import ChangeEvent, Delete, Insert
from price_relay.core.exceptions import StoreError

if TYPE_CHECKING:
    from price_relay.core.protocols import BroadcastStore, Subscriber

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT_SIZE = 25
DEFAULT_OUTBOX_SIZE = 256
_IDENTITY_FIELD = "id"


def build_message(event: ChangeEvent) -> dict[str, Any]:
    """Build the wire message for a change event.

    Deletes carry the row's durable ``id`` when it has one; otherwise they
    carry a ``match`` of the row's content fields so clients can remove the
    row by equality.

    Args:
        event: Insert or delete event.

    Returns:
        JSON-serialisable message dict.

    """
    if isinstance(event, Insert):
        return {"type": "insert", "row": event.row}
    row_id = event.row.get(_IDENTITY_FIELD)
    if row_id is not None:
        return {"type": "delete", "id": row_id}
    match = {k: v for k, v in event.row.items() if k != _IDENTITY_FIELD and v is not None}


class RelayHub:
    """Maintain the subscriber set and broadcast relay messages.

    Each subscriber owns a bounded outbox drained by its own writer task, so
    publishing never waits on a connection. A subscriber whose outbox is full
    misses the message; the others are unaffected.

    Args:
        store: Source of the recent-broadcasts snapshot.
        snapshot_size: Number of rows in the ``hello`` snapshot.
        outbox_size: Messages buffered per subscriber before new ones are
            dropped.

    """

    def __init__(
        self,
        store: BroadcastStore,
        snapshot_size: int = DEFAULT_SNAPSHOT_SIZE,
        outbox_size: int = DEFAULT_OUTBOX_SIZE,
    ) -> None:
        """Initialize an empty hub.

        Args:
            store: Source of the recent-broadcasts snapshot.
            snapshot_size: Number of rows in the ``hello`` snapshot.
            outbox_size: Messages buffered per subscriber.

        """
        self._store = store
        self._snapshot_size = snapshot_size
        self._outbox_size = outbox_size
        self._outboxes: dict[Subscriber, asyncio.Queue[str]] = {}
        self._writers: dict[Subscriber, asyncio.Task[None]] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def subscriber_count(self) -> int:
        """Return the number of connected subscribers."""
        return len(self._outboxes)

    def connect(self, subscriber: Subscriber) -> asyncio.Task[None]:
        """Register a subscriber and start sending its snapshot.

        The subscriber receives live events immediately; the snapshot may
        arrive before, after, or between them.

        Args:
            subscriber: Newly opened connection.

        Returns:
            The snapshot task, done once the ``hello`` message is queued.

        """
        outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=self._outbox_size)
        self._outboxes[subscriber] = outbox
        self._writers[subscriber] = asyncio.create_task(self._write_loop(subscriber, outbox))
        task = asyncio.create_task(self._send_snapshot(subscriber))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("Subscriber connected (%d total)", len(self._outboxes))
        return task

    def disconnect(self, subscriber: Subscriber) -> None:
        """Remove a subscriber and stop its writer; unknown subscribers are ignored."""
        self._outboxes.pop(subscriber, None)
        writer = self._writers.pop(subscriber, None)
        if writer is not None:
            writer.cancel()
        logger.info("Subscriber disconnected (%d total)", len(self._outboxes))

    def publish(self, event: ChangeEvent) -> int:
        """Queue a change event for every ready subscriber.

        Args:
            event: Insert or delete event.

        Returns:
            Number of subscribers the message was queued for.

        """
        payload = json.dumps(build_message(event))
        queued = 0
        for subscriber in list(self._outboxes):
            if subscriber.is_ready() and self._enqueue(subscriber, payload):
                queued += 1
        return queued

    async def run(self, queue: asyncio.Queue[ChangeEvent]) -> None:
        """Consume change events from a queue until cancelled.

        Args:
            queue: Channel fed by the change feed.

        """
        while True:
            event = await queue.get()
            try:
                self.publish(event)
            finally:
                queue.task_done()

    async def close(self) -> None:
        """Disconnect every subscriber and wait for their tasks to end."""
        pending = [*self._writers.values(), *self._tasks]
        for subscriber in list(self._outboxes):
            self.disconnect(subscriber)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    def _enqueue(self, subscriber: Subscriber, payload: str) -> bool:
        """Put a payload in a subscriber's outbox, dropping it when full."""
        outbox = self._outboxes.get(subscriber)
        if outbox is None:
            return False
        try:
            outbox.put_nowait(payload)
        except asyncio.QueueFull:
            logger.debug("Outbox full, dropping message for slow subscriber")
            return False
        return True

    async def _send_snapshot(self, subscriber: Subscriber) -> None:
        """Queue the ``hello`` message with the most recent broadcasts."""
        try:
            rows = await self._store.recent(self._snapshot_size)
        except StoreError as exc:
            logger.warning("Snapshot query failed: %s", exc)
            return
        self._enqueue(subscriber, json.dumps({"type": "hello", "rows": rows}))

    async def _write_loop(self, subscriber: Subscriber, outbox: asyncio.Queue[str]) -> None:
        """Send queued payloads to one subscriber in order until cancelled."""
        while True:
            payload = await outbox.get()
            try:
                await self._deliver(subscriber, payload)
            finally:
                outbox.task_done()

    @staticmethod
    async def _deliver(subscriber: Subscriber, payload: str) -> bool:
        """Send one payload, swallowing per-connection failures.

        Returns:
            True if the send completed.

        """
        try:
            await subscriber.send(payload)
        except Exception as exc:  # noqa: BLE001
            logger.debug("Dropped message for subscriber: %r", exc)
            return False
        return True
