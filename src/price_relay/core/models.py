"""Core data models shared across the price relay application.

Define the immutable value objects (Tick, Bucket, ChartPage) and the enums
(PollMode, Granularity) that flow between the poller, the tick cache, the
chart aggregator, and the HTTP layer.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any

from price_relay.core.timestamps import to_iso

_MS_PER_MINUTE = 60_000
_MS_PER_HOUR = 3_600_000
_MS_PER_DAY = 86_400_000


class PollMode(Enum):
    """Cadence of the upstream poller: regular or slowed down after a 429."""

    NORMAL = "normal"
    BACKOFF = "backoff"


class Granularity(Enum):
    """Supported chart bucket widths from 1-minute to 1-day."""

    M1 = "1m"
    M5 = "5m"
    M30 = "30m"
    H1 = "1h"
    D = "D"

    @property
    def width_ms(self) -> int:
        """Return the bucket width in milliseconds."""
        return _BUCKET_WIDTHS_MS[self]

    @classmethod
    def parse(cls, value: str) -> "Granularity":
        """Parse a query-string interval such as ``"5m"`` or ``"D"``.

        Args:
            value: Interval label.

        Returns:
            The matching ``Granularity``.

        Raises:
            ValueError: If the label is not a supported granularity.

        """
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(g.value for g in cls)
            msg = f"Unsupported interval {value!r}. Use one of: {valid}"
            raise ValueError(msg) from None


_BUCKET_WIDTHS_MS = {
    Granularity.M1: _MS_PER_MINUTE,
    Granularity.M5: 5 * _MS_PER_MINUTE,
    Granularity.M30: 30 * _MS_PER_MINUTE,
    Granularity.H1: _MS_PER_HOUR,
    Granularity.D: _MS_PER_DAY,
}


@dataclass(frozen=True)
class Tick:
    """Immutable price observation captured from one upstream fetch.

    Hold the fetch time as epoch milliseconds (UTC), the USD price, the
    24-hour percentage change, and the 24-hour volume. All three numeric
    fields must be finite.
    """

    timestamp: int
    price: float
    change: float
    volume: float

    def __post_init__(self) -> None:
        """Reject NaN and infinite numeric fields."""
        for name in ("price", "change", "volume"):
            value = getattr(self, name)
            if not math.isfinite(value):
                msg = f"{name} must be finite, got {value}"
                raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the tick to a JSON-friendly dict with an ISO timestamp."""
        return {
            "timestamp": to_iso(self.timestamp),
            "price": self.price,
            "change": self.change,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class Bucket:
    """One aggregated chart point keyed by the start of its time window.

    ``price`` and ``change`` are the last values seen in the window and
    ``volume`` is the sum over the window.
    """

    timestamp: int
    price: float
    change: float
    volume: float

    def to_dict(self) -> dict[str, Any]:
        """Serialise the bucket to a JSON-friendly dict with an ISO timestamp."""
        return {
            "timestamp": to_iso(self.timestamp),
            "price": self.price,
            "change": self.change,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class ChartPage:
    """One page of chart data returned by the chart service."""

    points: tuple[Bucket, ...]
    latest: Tick | None
    page: int
    next_page: int | None

    @property
    def has_more(self) -> bool:
        """Return True when another page is available."""
        return self.next_page is not None

    def to_dict(self) -> dict[str, Any]:
        """Serialise the page to the ``/api/chart`` response shape."""
        return {
            "points": [p.to_dict() for p in self.points],
            "latest": self.latest.to_dict() if self.latest is not None else None,
            "page": self.page,
            "nextPage": self.next_page,
            "hasMore": self.has_more,
        }
