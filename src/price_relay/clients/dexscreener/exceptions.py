"""Exceptions for the DexScreener API client."""


class DexScreenerError(Exception):
    """Base exception for DexScreener errors."""


class DexScreenerAPIError(DexScreenerError):
    """Non-2xx response from the DexScreener API.

    Args:
        msg: Human-readable description of the error.
        status_code: HTTP status code from the API response.

    """

    def __init__(self, msg: str, status_code: int) -> None:
        """Initialize DexScreener API error.

        Args:
            msg: Human-readable description of the error.
            status_code: HTTP status code from the API response.

        """
        super().__init__(f"[{status_code}] {msg}")
        self.msg = msg
        self.status_code = status_code


class DexScreenerRateLimitError(DexScreenerAPIError):
    """Rate limit exceeded error (429)."""
