"""Tests for structural protocol conformance."""

from unittest.mock import MagicMock

from price_relay.apps.relay.server import WebSocketSubscriber
from price_relay.core.models import Bucket, Tick
from price_relay.core.protocols import BroadcastStore, PricePoint, Subscriber, TickStore
from price_relay.store.repository import BroadcastRepository, ChartRepository, Database


class TestProtocols:
    """Verify concrete classes satisfy the runtime-checkable protocols."""

    def test_repositories_are_stores(self) -> None:
        """Match the repositories against the store protocols."""
        database = Database("sqlite+aiosqlite:///:memory:")

        assert isinstance(ChartRepository(database), TickStore)
        assert isinstance(BroadcastRepository(database), BroadcastStore)

    def test_ticks_and_buckets_are_price_points(self) -> None:
        """Accept ticks and buckets wherever a price point is expected."""
        assert isinstance(Tick(timestamp=0, price=1.0, change=0.0, volume=0.0), PricePoint)
        assert isinstance(Bucket(timestamp=0, price=1.0, change=0.0, volume=0.0), PricePoint)

    def test_websocket_adapter_is_subscriber(self) -> None:
        """Match the WebSocket adapter against the subscriber protocol."""
        assert isinstance(WebSocketSubscriber(MagicMock()), Subscriber)
