"""Domain exceptions for the price relay core."""


class PriceRelayError(Exception):
    """Base exception for price relay errors."""


class StoreError(PriceRelayError):
    """A durable-store read or write failed.

    Raised by the repositories in place of the underlying database error
    so callers do not depend on SQLAlchemy.
    """


class QueryError(PriceRelayError):
    """A chart or latest-tick query could not be answered.

    Carry an HTTP-style status so the server can tell a bad request from
    a store failure.

    Args:
        message: Human-readable description of the failure.
        status_code: HTTP status code to report to the caller.

    """

    def __init__(self, message: str, status_code: int = 500) -> None:
        """Initialize the query error.

        Args:
            message: Human-readable description of the failure.
            status_code: HTTP status code to report to the caller.

        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
