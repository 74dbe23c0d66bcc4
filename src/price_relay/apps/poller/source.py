"""One-shot upstream fetch with classified outcomes.

Issue a single DexScreener request for the configured token, parse the first
pair into a ``Tick``, and report the result as a value: ``Success``,
``RateLimited`` or ``SoftFailure``. Nothing raised by the client or the
parser escapes ``fetch_one``.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, cast

import httpx

from price_relay.clients.dexscreener.exceptions import (
    DexScreenerAPIError,
    DexScreenerRateLimitError,
)
from price_relay.core.models import Tick
from price_relay.core.timestamps import now_ms

if TYPE_CHECKING:
    from price_relay.clients.dexscreener.client import DexScreenerClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    """The fetch produced a valid tick."""

    tick: Tick


@dataclass(frozen=True)
class RateLimited:
    """The upstream answered HTTP 429."""


@dataclass(frozen=True)
class SoftFailure:
    """A transient upstream, transport, or payload problem."""

    reason: str


FetchOutcome = Success | RateLimited | SoftFailure


def parse_pairs(payload: Any, timestamp_ms: int) -> Success | SoftFailure:
    """Parse a DexScreener ``/latest/dex/tokens`` payload into a tick.

    Use the first entry of ``pairs``: ``priceUsd``, ``priceChange.h24`` and
    ``volume.h24``. Any missing key, wrong type, or non-finite number is a
    ``SoftFailure``.

    Args:
        payload: Decoded JSON body.
        timestamp_ms: Fetch time to stamp on the tick.

    Returns:
        ``Success`` with the parsed tick, or ``SoftFailure`` with a reason.

    """
    if not isinstance(payload, dict):
        return SoftFailure("payload is not an object")
    pairs = cast("dict[str, Any]", payload).get("pairs")
    if not isinstance(pairs, list) or not pairs:
        return SoftFailure("no pairs in payload")
    pair = cast("list[Any]", pairs)[0]
    if not isinstance(pair, dict):
        return SoftFailure("pair is not an object")
    pair = cast("dict[str, Any]", pair)

    try:
        price = float(pair["priceUsd"])
        change = float(pair["priceChange"]["h24"])
        volume = float(pair["volume"]["h24"])
    except (KeyError, TypeError, ValueError) as exc:
        return SoftFailure(f"malformed pair: {exc!r}")

    if not all(math.isfinite(v) for v in (price, change, volume)):
        return SoftFailure("non-finite numeric field")

    return Success(Tick(timestamp=timestamp_ms, price=price, change=change, volume=volume))


class TickSource:
    """Fetch the current quote for one token and classify the result.

    Args:
        client: DexScreener HTTP client.
        token_address: Token mint / contract address to quote.
        clock: Returns the current epoch milliseconds; injectable for tests.

    """

    def __init__(
        self,
        client: DexScreenerClient,
        token_address: str,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        """Initialize the tick source.

        Args:
            client: DexScreener HTTP client.
            token_address: Token mint / contract address to quote.
            clock: Returns the current epoch milliseconds.

        """
        self._client = client
        self._token_address = token_address
        self._clock = clock

    async def fetch_one(self) -> FetchOutcome:
        """Perform one upstream request and classify its outcome.

        Returns:
            ``RateLimited`` for HTTP 429, ``SoftFailure`` for any other
            error status, transport error or malformed payload, otherwise
            ``Success``.

        """
        try:
            payload = await self._client.get_token_pairs(self._token_address)
        except DexScreenerRateLimitError:
            return RateLimited()
        except DexScreenerAPIError as exc:
            return SoftFailure(str(exc))
        except httpx.HTTPError as exc:
            return SoftFailure(f"transport error: {exc!r}")
        except ValueError as exc:
            return SoftFailure(f"invalid JSON: {exc}")
        return parse_pairs(payload, self._clock())
