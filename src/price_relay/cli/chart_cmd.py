"""CLI commands for querying stored chart data.

Print bucketed chart points or the most recent tick straight from the
database, without a running service (the in-memory cache is empty here).
"""

import asyncio
from typing import Annotated

import typer

from price_relay.apps.charts.service import DEFAULT_PAGE_LIMIT, ChartService
from price_relay.apps.poller.cache import BoundedCache
from price_relay.cli._helpers import configure_logging, resolve_db_url
from price_relay.core.exceptions import QueryError
from price_relay.core.timestamps import to_iso
from price_relay.store.repository import ChartRepository, Database


def chart(
    interval: Annotated[str, typer.Option(help="Bucket width: 1m, 5m, 30m, 1h or D")] = "D",
    page: Annotated[int, typer.Option(help="1-based page number")] = 1,
    limit: Annotated[int, typer.Option(help="Rows per page (max 20000)")] = DEFAULT_PAGE_LIMIT,
    db_url: Annotated[str, typer.Option(help="SQLAlchemy async DB URL")] = "",
    verbose: Annotated[  # noqa: FBT002
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Print aggregated chart buckets for an interval."""
    configure_logging(verbose=verbose)
    url = resolve_db_url(db_url)
    asyncio.run(_chart(url, interval=interval, page=page, limit=limit))


async def _chart(db_url: str, *, interval: str, page: int, limit: int) -> None:
    """Query and display one chart page.

    Args:
        db_url: SQLAlchemy async connection string.
        interval: Granularity label.
        page: 1-based page number.
        limit: Rows per page.

    """
    db = Database(db_url)
    try:
        await db.init_db()
        service = ChartService(ChartRepository(db), BoundedCache())
        try:
            result = await service.get_chart(interval, page=page, limit=limit)
        except QueryError as exc:
            typer.echo(f"Error: {exc.message}", err=True)
            raise typer.Exit(code=1) from exc
    finally:
        await db.close()

    if not result.points:
        typer.echo(f"No chart data for interval {interval}")
        return

    typer.echo(f"\n{'Bucket (UTC)':<26} {'Price':>14} {'Change %':>10} {'Volume':>16}")
    typer.echo("-" * 70)
    for point in result.points:
        typer.echo(
            f"{to_iso(point.timestamp):<26} {point.price:>14.8f} "
            f"{point.change:>10.2f} {point.volume:>16.2f}"
        )
    if result.has_more:
        typer.echo(f"\nMore data available: --page {result.next_page}")


def latest(
    db_url: Annotated[str, typer.Option(help="SQLAlchemy async DB URL")] = "",
) -> None:
    """Print the most recent stored tick."""
    url = resolve_db_url(db_url)
    asyncio.run(_latest(url))


async def _latest(db_url: str) -> None:
    """Query and display the newest tick.

    Args:
        db_url: SQLAlchemy async connection string.

    """
    db = Database(db_url)
    try:
        await db.init_db()
        service = ChartService(ChartRepository(db), BoundedCache())
        try:
            tick = await service.get_latest()
        except QueryError as exc:
            typer.echo(f"Error: {exc.message}", err=True)
            raise typer.Exit(code=1) from exc
    finally:
        await db.close()

    if tick is None:
        typer.echo("No data")
        raise typer.Exit(code=1)

    typer.echo(
        f"{to_iso(tick.timestamp)}  price={tick.price:.8f}  "
        f"change={tick.change:.2f}%  volume={tick.volume:.2f}"
    )
