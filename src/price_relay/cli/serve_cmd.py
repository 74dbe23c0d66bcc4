"""CLI command for running the price relay service.

Launch the async service that polls DexScreener, stores ticks, serves chart
queries, and relays broadcast changes to WebSocket subscribers.
"""

import asyncio
import dataclasses
from typing import Annotated

import typer

from price_relay.apps.config import ServiceConfig
from price_relay.apps.service import FeedService
from price_relay.cli._helpers import configure_logging
from price_relay.core.config import ConfigError, get_config


def serve(
    db_url: Annotated[
        str, typer.Option(help="SQLAlchemy async DB URL (defaults to DATABASE_URL)")
    ] = "",
    token: Annotated[str, typer.Option(help="Token mint address to poll")] = "",
    host: Annotated[str, typer.Option(help="Interface to bind")] = "",
    port: Annotated[int, typer.Option(help="Port to bind (0 keeps the configured port)")] = 0,
    verbose: Annotated[  # noqa: FBT002
        bool, typer.Option("--verbose", "-v", help="Enable debug logging")
    ] = False,
) -> None:
    """Run the price relay service until interrupted.

    Settings come from ``config/settings.yaml`` and the environment; the
    options here override them for a single run.
    """
    configure_logging(verbose=verbose)

    try:
        config = ServiceConfig.from_loader(get_config(), db_url=db_url)
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    overrides: dict[str, object] = {}
    if token:
        overrides["token_mint"] = token
    if host:
        overrides["host"] = host
    if port:
        overrides["port"] = port
    config = dataclasses.replace(config, **overrides)  # pyright: ignore[reportArgumentType]

    typer.echo(f"Starting price relay on {config.host}:{config.port} (db: {config.db_url})")
    typer.echo(f"Token: {config.token_mint}")

    service = FeedService(config)
    asyncio.run(service.run())
