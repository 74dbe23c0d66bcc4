"""CLI commands for posting and deleting broadcasts.

Write to the broadcasts table that a running service watches; the service's
change feed relays each insert and delete to live subscribers.
"""

import asyncio
from typing import Annotated

import typer

from price_relay.cli._helpers import resolve_db_url
from price_relay.store.repository import BroadcastRepository, Database


def post(
    wallet: Annotated[str, typer.Argument(help="Wallet address of the poster")],
    message: Annotated[str, typer.Argument(help="Message body")],
    db_url: Annotated[str, typer.Option(help="SQLAlchemy async DB URL")] = "",
) -> None:
    """Post a broadcast message."""
    url = resolve_db_url(db_url)
    row = asyncio.run(_post(url, wallet, message))
    typer.echo(f"Posted broadcast #{row['id']} at {row['time']}")


async def _post(db_url: str, wallet: str, message: str) -> dict[str, object]:
    """Insert one broadcast and return its row."""
    db = Database(db_url)
    try:
        await db.init_db()
        return await BroadcastRepository(db).add(wallet, message)
    finally:
        await db.close()


def delete(
    broadcast_id: Annotated[int, typer.Argument(help="Id of the broadcast to delete")],
    db_url: Annotated[str, typer.Option(help="SQLAlchemy async DB URL")] = "",
) -> None:
    """Delete a broadcast message by id."""
    url = resolve_db_url(db_url)
    if not asyncio.run(_delete(url, broadcast_id)):
        typer.echo(f"Broadcast #{broadcast_id} not found", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Deleted broadcast #{broadcast_id}")


async def _delete(db_url: str, broadcast_id: int) -> bool:
    """Delete one broadcast and report whether it existed."""
    db = Database(db_url)
    try:
        await db.init_db()
        return await BroadcastRepository(db).delete(broadcast_id)
    finally:
        await db.close()
