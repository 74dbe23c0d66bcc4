"""CLI subpackage for the price relay.

Create the Typer application and register all command modules.
"""

import typer

from price_relay.cli.broadcast_cmd import delete, post
from price_relay.cli.chart_cmd import chart, latest
from price_relay.cli.serve_cmd import serve

app = typer.Typer(help="Token price poller, chart service and broadcast relay")

app.command()(serve)
app.command()(chart)
app.command()(latest)
app.command()(post)
app.command()(delete)

__all__ = ["app"]
