"""SQLAlchemy ORM models for the price relay database.

Define the ``chart_data`` table holding every accepted tick and the
``hub_broadcasts`` table whose inserts and deletes are relayed to live
subscribers. Timestamps are stored as epoch milliseconds.
"""

from typing import Any

from sqlalchemy import BigInteger, Float, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from price_relay.core.models import Tick
from price_relay.core.timestamps import to_iso


class Base(DeclarativeBase):
    """Declarative base class for all price relay ORM models."""


class ChartPoint(Base):
    """A persisted tick from the upstream price feed.

    Attributes:
        id: Auto-incrementing primary key.
        timestamp: Epoch milliseconds of the fetch (indexed).
        price: USD price.
        change: 24-hour percentage change.
        volume: 24-hour volume.

    """

    __tablename__ = "chart_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[int] = mapped_column(BigInteger, index=True)
    price: Mapped[float] = mapped_column(Float)
    change: Mapped[float] = mapped_column(Float)
    volume: Mapped[float] = mapped_column(Float)

    @classmethod
    def from_tick(cls, tick: Tick) -> "ChartPoint":
        """Build an ORM row from a tick."""
        return cls(
            timestamp=tick.timestamp,
            price=tick.price,
            change=tick.change,
            volume=tick.volume,
        )

    def to_tick(self) -> Tick:
        """Convert the row back into an immutable tick."""
        return Tick(
            timestamp=self.timestamp,
            price=self.price,
            change=self.change,
            volume=self.volume,
        )


class Broadcast(Base):
    """A message posted to the shared broadcast feed.

    Attributes:
        id: Auto-incrementing primary key, the durable identity relayed on
            delete.
        wallet: Wallet address of the poster.
        message: Message body.
        time: Epoch milliseconds when the message was posted (indexed).

    """

    __tablename__ = "hub_broadcasts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    wallet: Mapped[str] = mapped_column(String)
    message: Mapped[str] = mapped_column(String)
    time: Mapped[int] = mapped_column(BigInteger, index=True)

    def to_row(self) -> dict[str, Any]:
        """Serialise to the row dict sent to relay subscribers."""
        return {
            "id": self.id,
            "wallet": self.wallet,
            "message": self.message,
            "time": to_iso(self.time),
        }
