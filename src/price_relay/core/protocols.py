"""Structural protocols for the pluggable collaborators of the core.

Define the ``TickStore`` and ``BroadcastStore`` durable-store interfaces,
the ``PricePoint`` row shape accepted by the aggregator, and the
``Subscriber`` connection interface used by the relay hub. Any class whose
shape matches these protocols can be used without explicit inheritance
(structural subtyping).
"""

from typing import Any, Protocol, runtime_checkable

from price_relay.core.models import Tick


@runtime_checkable
class PricePoint(Protocol):
    """A row with a millisecond timestamp and the three tick measurements."""

    @property
    def timestamp(self) -> int:
        """Return the epoch-millisecond timestamp."""
        ...

    @property
    def price(self) -> float:
        """Return the price."""
        ...

    @property
    def change(self) -> float:
        """Return the 24-hour percentage change."""
        ...

    @property
    def volume(self) -> float:
        """Return the 24-hour volume."""
        ...


@runtime_checkable
class TickStore(Protocol):
    """Durable store for ticks.

    Implementors raise ``StoreError`` on any persistence failure.
    """

    async def insert_point(self, tick: Tick) -> None:
        """Persist a single tick."""
        ...

    async def get_points(self, cutoff_ms: int, offset: int, limit: int) -> tuple[list[Tick], int]:
        """Return one ascending page of ticks at or after ``cutoff_ms`` and the total count."""
        ...

    async def get_latest(self) -> Tick | None:
        """Return the most recent stored tick, or None when the store is empty."""
        ...


@runtime_checkable
class BroadcastStore(Protocol):
    """Durable store for the broadcasts table watched by the change feed."""

    async def recent(self, limit: int) -> list[dict[str, Any]]:
        """Return up to ``limit`` most recent broadcast rows, oldest first."""
        ...


@runtime_checkable
class Subscriber(Protocol):
    """A live connection that receives relay messages.

    ``send`` raises on failure; the hub treats any exception as a skipped
    delivery.
    """

    def is_ready(self) -> bool:
        """Return True when the connection can accept a message."""
        ...

    async def send(self, message: str) -> None:
        """Send one serialised message."""
        ...
