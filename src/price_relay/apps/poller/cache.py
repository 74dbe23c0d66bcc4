"""Bounded FIFO cache of the most recent ticks.

Keep the last ``capacity`` ticks in arrival order so chart and latest-tick
queries can be answered when the database is empty or lagging. Eviction is
strictly oldest-first; reads never reorder entries.
"""

import threading
from collections import deque

from price_relay.core.models import Tick

DEFAULT_CAPACITY = 10_000


class BoundedCache:
    """Fixed-capacity ordered buffer of ticks.

    Only the poll scheduler appends; query handlers read concurrently. A
    lock guards every access so a reader sees either the state before or
    after an append, never a partial one.

    Example::

        cache = BoundedCache(capacity=2)
        cache.append(t1)
        cache.append(t2)
        cache.append(t3)  # t1 evicted
        cache.last()      # t3

    Args:
        capacity: Maximum number of ticks retained.

    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        """Initialize an empty cache.

        Args:
            capacity: Maximum number of ticks retained (must be >= 1).

        Raises:
            ValueError: If capacity is less than 1.

        """
        if capacity < 1:
            msg = f"capacity must be >= 1, got {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._ticks: deque[Tick] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Return the maximum number of ticks retained."""
        return self._capacity

    def append(self, tick: Tick) -> None:
        """Push a tick to the back, evicting the oldest when full."""
        with self._lock:
            self._ticks.append(tick)

    def snapshot_since(self, cutoff_ms: int) -> list[Tick]:
        """Return the cached ticks with ``timestamp >= cutoff_ms`` in arrival order."""
        with self._lock:
            return [t for t in self._ticks if t.timestamp >= cutoff_ms]

    def last(self) -> Tick | None:
        """Return the most recent tick, or None when empty."""
        with self._lock:
            return self._ticks[-1] if self._ticks else None

    def __len__(self) -> int:
        """Return the number of cached ticks."""
        with self._lock:
            return len(self._ticks)
