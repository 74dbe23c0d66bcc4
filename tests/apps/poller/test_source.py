"""Tests for upstream fetch parsing and outcome classification."""

import math
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from price_relay.apps.poller.source import (
    RateLimited,
    SoftFailure,
    Success,
    TickSource,
    parse_pairs,
)
from price_relay.clients.dexscreener.exceptions import (
    DexScreenerAPIError,
    DexScreenerRateLimitError,
)
from price_relay.core.models import Tick

_NOW_MS = 1704067210000
_TOKEN = "mint_abc"


def _payload(
    price: Any = "0.00123",
    change: Any = -4.5,
    volume: Any = 120000.5,
) -> dict[str, Any]:
    """Build a DexScreener token payload with one pair."""
    return {
        "pairs": [
            {
                "priceUsd": price,
                "priceChange": {"h24": change},
                "volume": {"h24": volume},
            },
            {"priceUsd": "999", "priceChange": {"h24": 0}, "volume": {"h24": 0}},
        ]
    }


def _source(client: MagicMock) -> TickSource:
    """Create a TickSource with a fixed clock."""
    return TickSource(client, _TOKEN, clock=lambda: _NOW_MS)


class TestParsePairs:
    """Tests for parse_pairs."""

    def test_uses_first_pair(self) -> None:
        """Parse price, 24h change and 24h volume from the first pair."""
        result = parse_pairs(_payload(), _NOW_MS)

        assert result == Success(
            Tick(timestamp=_NOW_MS, price=0.00123, change=-4.5, volume=120000.5)
        )

    @pytest.mark.parametrize(
        ("payload", "reason"),
        [
            (None, "payload is not an object"),
            ([], "payload is not an object"),
            ({}, "no pairs in payload"),
            ({"pairs": []}, "no pairs in payload"),
            ({"pairs": None}, "no pairs in payload"),
            ({"pairs": ["x"]}, "pair is not an object"),
        ],
    )
    def test_structural_failures(self, payload: Any, reason: str) -> None:
        """Classify structurally invalid payloads as soft failures."""
        assert parse_pairs(payload, _NOW_MS) == SoftFailure(reason)

    def test_missing_field(self) -> None:
        """Classify a missing nested field as malformed."""
        payload = {"pairs": [{"priceUsd": "1.0", "volume": {"h24": 1}}]}

        result = parse_pairs(payload, _NOW_MS)

        assert isinstance(result, SoftFailure)
        assert result.reason.startswith("malformed pair")

    def test_unparseable_price(self) -> None:
        """Classify a non-numeric price string as malformed."""
        result = parse_pairs(_payload(price="n/a"), _NOW_MS)

        assert isinstance(result, SoftFailure)
        assert result.reason.startswith("malformed pair")

    @pytest.mark.parametrize("bad", ["NaN", "inf", math.inf])
    def test_non_finite(self, bad: Any) -> None:
        """Reject non-finite numbers."""
        assert parse_pairs(_payload(volume=bad), _NOW_MS) == SoftFailure(
            "non-finite numeric field"
        )


class TestTickSource:
    """Tests for TickSource.fetch_one."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        """Stamp the parsed tick with the injected clock."""
        client = MagicMock()
        client.get_token_pairs = AsyncMock(return_value=_payload())

        outcome = await _source(client).fetch_one()

        assert isinstance(outcome, Success)
        assert outcome.tick.timestamp == _NOW_MS
        client.get_token_pairs.assert_awaited_once_with(_TOKEN)

    @pytest.mark.asyncio
    async def test_rate_limited(self) -> None:
        """Map HTTP 429 to RateLimited."""
        client = MagicMock()
        client.get_token_pairs = AsyncMock(
            side_effect=DexScreenerRateLimitError("HTTP 429", 429)
        )

        assert await _source(client).fetch_one() == RateLimited()

    @pytest.mark.asyncio
    async def test_api_error_is_soft(self) -> None:
        """Map other error statuses to SoftFailure."""
        client = MagicMock()
        client.get_token_pairs = AsyncMock(side_effect=DexScreenerAPIError("HTTP 500", 500))

        outcome = await _source(client).fetch_one()

        assert outcome == SoftFailure("[500] HTTP 500")

    @pytest.mark.asyncio
    async def test_transport_error_is_soft(self) -> None:
        """Map timeouts and connection errors to SoftFailure."""
        client = MagicMock()
        client.get_token_pairs = AsyncMock(side_effect=httpx.ConnectTimeout("timed out"))

        outcome = await _source(client).fetch_one()

        assert isinstance(outcome, SoftFailure)
        assert outcome.reason.startswith("transport error")

    @pytest.mark.asyncio
    async def test_invalid_json_is_soft(self) -> None:
        """Map an undecodable body to SoftFailure."""
        client = MagicMock()
        client.get_token_pairs = AsyncMock(side_effect=ValueError("Expecting value"))

        outcome = await _source(client).fetch_one()

        assert outcome == SoftFailure("invalid JSON: Expecting value")
