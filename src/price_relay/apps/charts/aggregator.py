"""Bucket tick rows into fixed-width UTC time windows.

Group price observations by ``floor(timestamp / width) * width`` for a
requested granularity, keep the last price and change seen in each window,
and sum the volume. Bucketing works on epoch milliseconds only, so results
do not depend on the server's local time zone.
"""

import math
from collections.abc import Iterable

from price_relay.core.models import Bucket, Granularity
from price_relay.core.protocols import PricePoint

_MS_PER_DAY = 86_400_000
_DAILY_LOOKBACK_DAYS = 30
_HOURLY_LOOKBACK_DAYS = 7
_DEFAULT_LOOKBACK_DAYS = 1


def bucket_key(timestamp_ms: int, granularity: Granularity) -> int:
    """Floor a timestamp to the start of its bucket.

    Args:
        timestamp_ms: Epoch milliseconds.
        granularity: Bucket width selector.

    Returns:
        The bucket start in epoch milliseconds.

    """
    width = granularity.width_ms
    return (timestamp_ms // width) * width


def aggregate(rows: Iterable[PricePoint], granularity: Granularity) -> list[Bucket]:
    """Aggregate rows into one bucket per distinct window.

    Rows are first ordered by timestamp (stable, so ties keep their input
    order); within a bucket the last row's price and change win and volumes
    accumulate, with non-finite volume counted as zero.

    Args:
        rows: Objects exposing ``timestamp`` (ms), ``price``, ``change`` and
            ``volume``.
        granularity: Bucket width selector.

    Returns:
        Buckets sorted ascending by timestamp with unique keys.

    """
    prices: dict[int, tuple[float, float]] = {}
    volumes: dict[int, float] = {}
    for row in sorted(rows, key=lambda r: r.timestamp):
        key = bucket_key(row.timestamp, granularity)
        prices[key] = (float(row.price), float(row.change))
        volume = float(row.volume)
        volumes[key] = volumes.get(key, 0.0) + (volume if math.isfinite(volume) else 0.0)

    return [
        Bucket(timestamp=key, price=prices[key][0], change=prices[key][1], volume=volumes[key])
        for key in sorted(prices)
    ]


def window(granularity: Granularity, now_ms: int) -> int:
    """Return the earliest timestamp a query at this granularity may scan.

    Daily charts look back 30 days, hourly charts 7 days, and everything
    finer 24 hours.

    Args:
        granularity: Bucket width selector.
        now_ms: Current epoch milliseconds.

    Returns:
        Inclusive lower-bound cutoff in epoch milliseconds.

    """
    if granularity is Granularity.D:
        days = _DAILY_LOOKBACK_DAYS
    elif granularity is Granularity.H1:
        days = _HOURLY_LOOKBACK_DAYS
    else:
        days = _DEFAULT_LOOKBACK_DAYS
    return now_ms - days * _MS_PER_DAY
