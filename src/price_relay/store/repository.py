"""Async repositories for persisting ticks and broadcasts.

Wrap SQLAlchemy async engine and session management. A single ``Database``
owns the engine so that the chart and broadcast repositories share one
connection pool (and, for in-memory SQLite, one database). Every database
failure surfaces as ``StoreError`` so callers never depend on SQLAlchemy.
"""

import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from price_relay.core.exceptions import StoreError
from price_relay.core.models import Tick
from price_relay.core.timestamps import now_ms
from price_relay.store.models import Base, Broadcast, ChartPoint

logger = logging.getLogger(__name__)


class Database:
    """Async engine and session factory shared by the repositories.

    Args:
        db_url: SQLAlchemy async connection string
            (e.g. ``sqlite+aiosqlite:///price_relay.db``).

    """

    def __init__(self, db_url: str) -> None:
        """Initialize the async database engine.

        Args:
            db_url: SQLAlchemy async connection string.

        """
        self.engine: AsyncEngine = create_async_engine(db_url, echo=False)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def init_db(self) -> None:
        """Create all tables if they do not already exist.

        Idempotent, so safe to call on every startup.

        Raises:
            StoreError: If the schema cannot be created.

        """
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            msg = f"Failed to initialise database: {exc}"
            raise StoreError(msg) from exc
        logger.info("Database tables initialised")

    async def close(self) -> None:
        """Dispose the async engine and release all connections."""
        await self.engine.dispose()
        logger.info("Database engine disposed")


class ChartRepository:
    """Persistence and time-range queries for ticks in ``chart_data``.

    Args:
        database: Shared database handle.

    """

    def __init__(self, database: Database) -> None:
        """Initialize the repository.

        Args:
            database: Shared database handle.

        """
        self._session_factory = database.session_factory

    async def insert_point(self, tick: Tick) -> None:
        """Insert a single tick.

        Args:
            tick: Tick to persist.

        Raises:
            StoreError: If the insert fails.

        """
        try:
            async with self._session_factory() as session, session.begin():
                session.add(ChartPoint.from_tick(tick))
        except SQLAlchemyError as exc:
            msg = f"Insert into chart_data failed: {exc}"
            raise StoreError(msg) from exc

    async def get_points(self, cutoff_ms: int, offset: int, limit: int) -> tuple[list[Tick], int]:
        """Return one page of ticks at or after a cutoff, plus the exact total.

        Args:
            cutoff_ms: Inclusive lower bound (epoch milliseconds).
            offset: Number of rows to skip.
            limit: Maximum number of rows to return.

        Returns:
            Tuple of ticks ordered by timestamp ascending and the total number
            of rows matching the cutoff.

        Raises:
            StoreError: If the query fails.

        """
        rows_stmt = (
            select(ChartPoint)
            .where(ChartPoint.timestamp >= cutoff_ms)
            .order_by(ChartPoint.timestamp, ChartPoint.id)
            .offset(offset)
            .limit(limit)
        )
        count_stmt = (
            select(func.count()).select_from(ChartPoint).where(ChartPoint.timestamp >= cutoff_ms)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(rows_stmt)
                rows = [row.to_tick() for row in result.scalars().all()]
                total = (await session.execute(count_stmt)).scalar_one()
        except SQLAlchemyError as exc:
            msg = f"Query on chart_data failed: {exc}"
            raise StoreError(msg) from exc
        return rows, total

    async def get_latest(self) -> Tick | None:
        """Return the most recent stored tick.

        Returns:
            The newest tick, or None when the table is empty.

        Raises:
            StoreError: If the query fails.

        """
        stmt = select(ChartPoint).order_by(ChartPoint.timestamp.desc()).limit(1)
        try:
            async with self._session_factory() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            msg = f"Query on chart_data failed: {exc}"
            raise StoreError(msg) from exc
        return row.to_tick() if row is not None else None

    async def get_count(self) -> int:
        """Return the total number of stored ticks.

        Raises:
            StoreError: If the query fails.

        """
        stmt = select(func.count()).select_from(ChartPoint)
        try:
            async with self._session_factory() as session:
                return (await session.execute(stmt)).scalar_one()
        except SQLAlchemyError as exc:
            msg = f"Count on chart_data failed: {exc}"
            raise StoreError(msg) from exc


class BroadcastRepository:
    """Persistence for the ``hub_broadcasts`` table.

    Args:
        database: Shared database handle.

    """

    def __init__(self, database: Database) -> None:
        """Initialize the repository.

        Args:
            database: Shared database handle.

        """
        self._session_factory = database.session_factory

    async def add(self, wallet: str, message: str, time_ms: int | None = None) -> dict[str, Any]:
        """Insert a broadcast and return its row.

        Args:
            wallet: Wallet address of the poster.
            message: Message body.
            time_ms: Post time in epoch milliseconds; defaults to now.

        Returns:
            The inserted row including its generated ``id``.

        Raises:
            StoreError: If the insert fails.

        """
        broadcast = Broadcast(
            wallet=wallet,
            message=message,
            time=time_ms if time_ms is not None else now_ms(),
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(broadcast)
        except SQLAlchemyError as exc:
            msg = f"Insert into hub_broadcasts failed: {exc}"
            raise StoreError(msg) from exc
        return broadcast.to_row()

    async def delete(self, broadcast_id: int) -> bool:
        """Delete a broadcast by id.

        Args:
            broadcast_id: Primary key of the row to remove.

        Returns:
            True if a row was deleted.

        Raises:
            StoreError: If the delete fails.

        """
        stmt = delete(Broadcast).where(Broadcast.id == broadcast_id)
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(stmt)
        except SQLAlchemyError as exc:
            msg = f"Delete from hub_broadcasts failed: {exc}"
            raise StoreError(msg) from exc
        return bool(result.rowcount)  # pyright: ignore[reportAttributeAccessIssue]

    async def recent(self, limit: int) -> list[dict[str, Any]]:
        """Return the most recent broadcasts, oldest first.

        Args:
            limit: Maximum number of rows.

        Returns:
            Up to ``limit`` rows in ascending time order.

        Raises:
            StoreError: If the query fails.

        """
        stmt = select(Broadcast).order_by(Broadcast.time.desc(), Broadcast.id.desc()).limit(limit)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            msg = f"Query on hub_broadcasts failed: {exc}"
            raise StoreError(msg) from exc
        return [row.to_row() for row in reversed(rows)]

    async def list_all(self) -> list[dict[str, Any]]:
        """Return every broadcast ordered by id.

        Raises:
            StoreError: If the query fails.

        """
        stmt = select(Broadcast).order_by(Broadcast.id)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            msg = f"Query on hub_broadcasts failed: {exc}"
            raise StoreError(msg) from exc
        return [row.to_row() for row in rows]
