"""Configuration dataclass for the price relay service.

Hold all tuneable parameters for a running service: database URL, upstream
token, poll cadence, cache size, server binding and relay behaviour.
Immutable after construction to prevent accidental mutation during
long-running sessions.
"""

from dataclasses import dataclass

from price_relay.core.config import ConfigLoader

_DEFAULT_TOKEN_MINT = "J3rYdme789g1zAysfbH9oP4zjagvfVM2PX7KJgFDpump"
_DEFAULT_BASE_URL = "https://api.dexscreener.com"
_DEFAULT_NORMAL_INTERVAL = 20.0
_DEFAULT_BACKOFF_INTERVAL = 60.0
_DEFAULT_CACHE_CAPACITY = 10_000
_DEFAULT_HOST = "0.0.0.0"  # noqa: S104
_DEFAULT_PORT = 3000
_DEFAULT_SNAPSHOT_SIZE = 25
_DEFAULT_WATCH_INTERVAL = 2.0
_DEFAULT_REQUEST_TIMEOUT = 10.0


@dataclass(frozen=True)
class ServiceConfig:
    """Immutable configuration for a price relay session.

    Attributes:
        db_url: SQLAlchemy async connection string
            (e.g. ``sqlite+aiosqlite:///price_relay.db``).
        token_mint: Token address quoted on DexScreener.
        base_url: DexScreener API base URL.
        normal_interval: Seconds between polls in normal mode.
        backoff_interval: Seconds between polls after a 429.
        cache_capacity: Maximum ticks kept in memory.
        host: Interface the HTTP/WebSocket server binds to.
        port: Port the HTTP/WebSocket server binds to.
        snapshot_size: Broadcast rows sent to each new subscriber.
        watch_interval: Seconds between change-feed reads.
        request_timeout: Upstream HTTP timeout in seconds.

    """

    db_url: str
    token_mint: str = _DEFAULT_TOKEN_MINT
    base_url: str = _DEFAULT_BASE_URL
    normal_interval: float = _DEFAULT_NORMAL_INTERVAL
    backoff_interval: float = _DEFAULT_BACKOFF_INTERVAL
    cache_capacity: int = _DEFAULT_CACHE_CAPACITY
    host: str = _DEFAULT_HOST
    port: int = _DEFAULT_PORT
    snapshot_size: int = _DEFAULT_SNAPSHOT_SIZE
    watch_interval: float = _DEFAULT_WATCH_INTERVAL
    request_timeout: float = _DEFAULT_REQUEST_TIMEOUT

    @classmethod
    def from_loader(cls, loader: ConfigLoader, db_url: str = "") -> "ServiceConfig":
        """Build a config from YAML settings.

        Args:
            loader: Loaded settings.
            db_url: Database URL overriding ``database.url`` when non-empty.

        Returns:
            A ``ServiceConfig`` with every missing setting defaulted.

        Raises:
            ConfigError: If the database URL is missing or a numeric
                setting is malformed.

        """
        return cls(
            db_url=db_url or loader.get_database_url(),
            token_mint=str(loader.get("upstream.token_mint", _DEFAULT_TOKEN_MINT)),
            base_url=str(loader.get("upstream.base_url", _DEFAULT_BASE_URL)),
            normal_interval=loader.get_float("poller.normal_interval", _DEFAULT_NORMAL_INTERVAL),
            backoff_interval=loader.get_float(
                "poller.backoff_interval", _DEFAULT_BACKOFF_INTERVAL
            ),
            cache_capacity=loader.get_int("poller.cache_capacity", _DEFAULT_CACHE_CAPACITY),
            host=str(loader.get("server.host", _DEFAULT_HOST)),
            port=loader.get_int("server.port", _DEFAULT_PORT),
            snapshot_size=loader.get_int("relay.snapshot_size", _DEFAULT_SNAPSHOT_SIZE),
            watch_interval=loader.get_float("relay.watch_interval", _DEFAULT_WATCH_INTERVAL),
            request_timeout=loader.get_float("upstream.timeout", _DEFAULT_REQUEST_TIMEOUT),
        )
