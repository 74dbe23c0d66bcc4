"""Shared helpers for price relay CLI commands.

Centralise logging setup and database URL resolution, which every command
needs.
"""

import logging

import typer

from price_relay.core.config import ConfigError, get_config


def configure_logging(*, verbose: bool) -> None:
    """Configure root logging for a CLI run.

    Args:
        verbose: Enable DEBUG-level output instead of INFO.

    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def resolve_db_url(db_url: str) -> str:
    """Return ``db_url`` or, when empty, the configured ``database.url``.

    Exit the CLI with code 1 when neither is available; a missing database
    is the one configuration error the service cannot run without.

    Args:
        db_url: Value of the ``--db-url`` option (may be empty).

    Returns:
        The SQLAlchemy async connection string.

    Raises:
        typer.Exit: If no database URL can be resolved.

    """
    if db_url:
        return db_url
    try:
        return get_config().get_database_url()
    except ConfigError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc
