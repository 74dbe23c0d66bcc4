"""Epoch-millisecond helpers.

All instants in the application are UTC epoch milliseconds; conversion to
text happens only at the serialisation boundary.
"""

import time
from datetime import UTC, datetime

_MS_PER_SECOND = 1000


def now_ms() -> int:
    """Return the current time as epoch milliseconds.

    Returns:
        Integer epoch milliseconds.

    """
    return int(time.time() * _MS_PER_SECOND)


def to_iso(timestamp_ms: int) -> str:
    """Format epoch milliseconds as an ISO 8601 UTC string.

    The output always carries millisecond precision and a ``Z`` suffix,
    e.g. ``2024-01-01T00:00:10.000Z``, independent of the server's local
    time zone.

    Args:
        timestamp_ms: Epoch milliseconds.

    Returns:
        ISO 8601 string in UTC.

    """
    dt = datetime.fromtimestamp(timestamp_ms // _MS_PER_SECOND, tz=UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{timestamp_ms % _MS_PER_SECOND:03d}Z"
