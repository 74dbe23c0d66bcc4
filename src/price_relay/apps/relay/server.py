"""HTTP and WebSocket front end for the relay and chart queries.

Run a ``websockets`` server that upgrades ``/api/realtime`` to a WebSocket
subscribed to the relay hub and answers the plain HTTP GET endpoints
(``/api/health``, ``/api/chart``, ``/api/latest``) from the request hook
with JSON bodies.
"""

from __future__ import annotations

import json
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlsplit

from websockets import ConnectionClosed
from websockets.asyncio.server import ServerConnection, serve
from websockets.protocol import State

from price_relay.apps.charts.service import DEFAULT_PAGE_LIMIT
from price_relay.core.exceptions import QueryError
from price_relay.core.timestamps import now_ms, to_iso

if TYPE_CHECKING:
    import asyncio

    from websockets.http11 import Request, Response

    from price_relay.apps.charts.service import ChartService
    from price_relay.apps.relay.hub import RelayHub

logger = logging.getLogger(__name__)

REALTIME_PATH = "/api/realtime"
_DEFAULT_INTERVAL = "D"


class WebSocketSubscriber:
    """Adapt a ``websockets`` server connection to the ``Subscriber`` protocol.

    Args:
        connection: Open server-side WebSocket connection.

    """

    def __init__(self, connection: ServerConnection) -> None:
        """Wrap a server connection.

        Args:
            connection: Open server-side WebSocket connection.

        """
        self._connection = connection

    def is_ready(self) -> bool:
        """Return True while the WebSocket is open."""
        return self._connection.state is State.OPEN

    async def send(self, message: str) -> None:
        """Send a text frame."""
        await self._connection.send(message)


def _int_param(params: dict[str, list[str]], name: str, default: int) -> int:
    """Read a positive integer query parameter.

    Missing, unparseable, zero and negative values all mean ``default``.
    """
    try:
        value = int(params[name][0])
    except (KeyError, IndexError, ValueError):
        return default
    return value if value > 0 else default


class RelayServer:
    """Serve chart queries over HTTP and relay messages over WebSocket.

    Args:
        hub: Relay hub that owns the subscriber set.
        charts: Chart query service.

    """

    def __init__(self, hub: RelayHub, charts: ChartService) -> None:
        """Initialize the server.

        Args:
            hub: Relay hub that owns the subscriber set.
            charts: Chart query service.

        """
        self._hub = hub
        self._charts = charts

    async def serve(self, host: str, port: int, stop: asyncio.Event) -> None:
        """Listen on ``host:port`` until ``stop`` is set.

        Args:
            host: Interface to bind.
            port: TCP port to bind.
            stop: Event that ends the server when set.

        """
        async with serve(self._handle, host, port, process_request=self._process_request):
            logger.info("Relay server listening on %s:%d", host, port)
            await stop.wait()
        logger.info("Relay server closed")

    async def route(self, path: str) -> tuple[int, dict[str, Any] | None]:
        """Resolve a request path to an HTTP status and JSON body.

        Args:
            path: Request target including any query string.

        Returns:
            ``(status, body)``; a ``None`` body means the request should
            proceed with the WebSocket handshake.

        """
        parts = urlsplit(path)
        params = parse_qs(parts.query)

        if parts.path == REALTIME_PATH:
            return HTTPStatus.SWITCHING_PROTOCOLS, None

        if parts.path == "/api/health":
            return HTTPStatus.OK, {"ok": True, "time": to_iso(now_ms())}

        if parts.path == "/api/chart":
            interval = params.get("interval", [_DEFAULT_INTERVAL])[0]
            page = _int_param(params, "page", 1)
            limit = _int_param(params, "limit", DEFAULT_PAGE_LIMIT)
            try:
                chart = await self._charts.get_chart(interval, page=page, limit=limit)
            except QueryError as exc:
                body = {"error": "Failed to fetch chart data", "message": exc.message}
                return exc.status_code, body
            return HTTPStatus.OK, chart.to_dict()

        if parts.path == "/api/latest":
            try:
                latest = await self._charts.get_latest()
            except QueryError as exc:
                return exc.status_code, {"error": "Failed", "message": exc.message}
            if latest is None:
                return HTTPStatus.NOT_FOUND, {"error": "No data"}
            return HTTPStatus.OK, latest.to_dict()

        return HTTPStatus.NOT_FOUND, {"error": "Not found"}

    async def _process_request(
        self, connection: ServerConnection, request: Request
    ) -> Response | None:
        """Answer plain HTTP requests; let ``/api/realtime`` upgrade."""
        status, body = await self.route(request.path)
        if body is None:
            return None
        response = connection.respond(HTTPStatus(status), json.dumps(body))
        del response.headers["Content-Type"]
        response.headers["Content-Type"] = "application/json"
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response

    async def _handle(self, connection: ServerConnection) -> None:
        """Attach a WebSocket to the hub for the lifetime of the connection."""
        subscriber = WebSocketSubscriber(connection)
        self._hub.connect(subscriber)
        try:
            async for _message in connection:
                pass
        except ConnectionClosed as exc:
            logger.debug("Subscriber connection closed: %s", exc)
        finally:
            self._hub.disconnect(subscriber)
