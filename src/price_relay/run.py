"""CLI entry point for the price relay.

Provide the Typer app and main entry point. All command logic lives in the
cli subpackage.
"""

from price_relay.cli import app

__all__ = ["app", "main"]


def main() -> None:
    """Run the price relay CLI application."""
    app()


if __name__ == "__main__":
    main()
