"""DexScreener public API client."""

from price_relay.clients.dexscreener.client import DexScreenerClient
from price_relay.clients.dexscreener.exceptions import (
    DexScreenerAPIError,
    DexScreenerError,
    DexScreenerRateLimitError,
)

__all__ = [
    "DexScreenerAPIError",
    "DexScreenerClient",
    "DexScreenerError",
    "DexScreenerRateLimitError",
]
