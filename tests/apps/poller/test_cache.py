"""Tests for the bounded tick cache."""

import pytest

from price_relay.apps.poller.cache import DEFAULT_CAPACITY, BoundedCache
from price_relay.core.models import Tick

_BASE_TS = 1704067200000
_CAPACITY_3 = 3


def _tick(offset_ms: int, price: float = 1.0) -> Tick:
    """Create a tick ``offset_ms`` after the base timestamp."""
    return Tick(timestamp=_BASE_TS + offset_ms, price=price, change=0.0, volume=1.0)


class TestBoundedCache:
    """Tests for BoundedCache."""

    def test_default_capacity(self) -> None:
        """Default to ten thousand entries."""
        assert BoundedCache().capacity == DEFAULT_CAPACITY == 10_000

    @pytest.mark.parametrize("capacity", [0, -5])
    def test_invalid_capacity_raises(self, capacity: int) -> None:
        """Reject capacities below one."""
        with pytest.raises(ValueError, match="capacity must be >= 1"):
            BoundedCache(capacity)

    def test_empty_cache(self) -> None:
        """Report no entries and no last tick."""
        cache = BoundedCache(_CAPACITY_3)
        assert len(cache) == 0
        assert cache.last() is None
        assert cache.snapshot_since(0) == []

    def test_evicts_oldest_first(self) -> None:
        """Drop the oldest entry once capacity is exceeded."""
        cache = BoundedCache(_CAPACITY_3)
        ticks = [_tick(i * 1000) for i in range(_CAPACITY_3 + 1)]
        for tick in ticks:
            cache.append(tick)

        assert len(cache) == _CAPACITY_3
        assert cache.snapshot_since(0) == ticks[1:]
        assert cache.last() == ticks[-1]

    def test_full_default_capacity_plus_one(self) -> None:
        """Keep exactly the newest ten thousand of 10,001 appends."""
        cache = BoundedCache()
        for i in range(DEFAULT_CAPACITY + 1):
            cache.append(_tick(i))

        snapshot = cache.snapshot_since(0)
        assert len(snapshot) == DEFAULT_CAPACITY
        assert snapshot[0].timestamp == _BASE_TS + 1
        assert snapshot[-1].timestamp == _BASE_TS + DEFAULT_CAPACITY

    def test_snapshot_since_filters_inclusive(self) -> None:
        """Include ticks at the cutoff and keep arrival order."""
        cache = BoundedCache(_CAPACITY_3 + 2)
        cache.append(_tick(3000))
        cache.append(_tick(1000))
        cache.append(_tick(2000))

        result = cache.snapshot_since(_BASE_TS + 2000)

        assert [t.timestamp for t in result] == [_BASE_TS + 3000, _BASE_TS + 2000]

    def test_snapshot_is_a_copy(self) -> None:
        """Later appends do not change an earlier snapshot."""
        cache = BoundedCache(_CAPACITY_3)
        cache.append(_tick(0))
        snapshot = cache.snapshot_since(0)
        cache.append(_tick(1000))

        assert len(snapshot) == 1
