"""HTTP client for the DexScreener public API."""

from typing import Any

import httpx

from price_relay.clients.dexscreener.exceptions import (
    DexScreenerAPIError,
    DexScreenerRateLimitError,
)

_HTTP_BAD_REQUEST = 400
_HTTP_TOO_MANY_REQUESTS = 429


class DexScreenerClient:
    """HTTP client for DexScreener public market-data endpoints.

    No authentication is required. Responses are never cached: every call
    sends ``Cache-Control: no-cache`` so each poll sees a fresh quote.
    """

    BASE_URL = "https://api.dexscreener.com"

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the DexScreener client.

        Args:
            base_url: Base URL for the DexScreener API.
            timeout: Request timeout in seconds.

        """
        self.base_url = base_url.rstrip("/")
        self._http_client = httpx.AsyncClient(
            timeout=timeout,
            headers={"Cache-Control": "no-cache"},
        )

    async def get_token_pairs(self, token_address: str) -> Any:
        """Fetch the trading pairs for a token.

        Args:
            token_address: Token mint / contract address.

        Returns:
            Parsed JSON response, normally a dict with a ``pairs`` list.

        Raises:
            DexScreenerRateLimitError: When the API answers 429.
            DexScreenerAPIError: For any other non-2xx response.
            httpx.HTTPError: On transport failures and timeouts.
            ValueError: When the body is not valid JSON.

        """
        url = f"{self.base_url}/latest/dex/tokens/{token_address}"
        response = await self._http_client.request("GET", url)

        if response.status_code >= _HTTP_BAD_REQUEST:
            self._handle_error(response)

        result: Any = response.json()
        return result

    @staticmethod
    def _handle_error(response: httpx.Response) -> None:
        """Raise the matching API error for a non-2xx response.

        Args:
            response: HTTP response with an error status code.

        Raises:
            DexScreenerRateLimitError: For 429 responses.
            DexScreenerAPIError: For every other error status.

        """
        msg = f"HTTP {response.status_code}"
        if response.status_code == _HTTP_TOO_MANY_REQUESTS:
            raise DexScreenerRateLimitError(msg, response.status_code)
        raise DexScreenerAPIError(msg, response.status_code)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._http_client.aclose()

    async def __aenter__(self) -> "DexScreenerClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager."""
        await self.close()
