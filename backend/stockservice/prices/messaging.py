"""Message-socket endpoint: request/stream routes over a WebSocket.

A client opens ``/rsocket`` and sends one request frame naming a route and
its payload::

    {"route": "stockPrices", "data": "DEMO"}

The server answers with a stream of JSON frames, one per price sample, until
either side closes the socket.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from contextlib import closing

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from .registry import Subscription, SymbolStreamRegistry

logger = logging.getLogger(__name__)

STOCK_PRICES_ROUTE = "stockPrices"


class ProtocolError(Exception):
    """Raised when a request frame cannot be routed."""


def create_messaging_router(registry: SymbolStreamRegistry) -> APIRouter:
    """Create the WebSocket router exposing the ``stockPrices`` route."""
    router = APIRouter(tags=["messaging"])

    routes: dict[str, Callable[[str], Subscription]] = {
        STOCK_PRICES_ROUTE: registry.subscribe,
    }

    @router.websocket("/rsocket")
    async def message_socket(websocket: WebSocket) -> None:
        await websocket.accept()
        client_ip = websocket.client.host if websocket.client else "unknown"

        try:
            frame = await websocket.receive_text()
            route, data = _parse_request(frame, routes)
        except WebSocketDisconnect:
            logger.info("Socket client left before sending a request: %s", client_ip)
            return
        except KeyError:
            # Binary frame: starlette has no "text" key to read
            await _reject(websocket, client_ip, ProtocolError("request frame must be text"))
            return
        except ProtocolError as exc:
            await _reject(websocket, client_ip, exc)
            return

        logger.info("Socket client connected: %s (%s %s)", client_ip, route, data)
        with closing(routes[route](data)) as subscription:
            await _relay(websocket, subscription)
        logger.info("Socket client disconnected: %s (%s %s)", client_ip, route, data)

    return router


def _parse_request(
    frame: str | None,
    routes: dict[str, Callable[[str], Subscription]],
) -> tuple[str, str]:
    if not isinstance(frame, str):
        raise ProtocolError("request frame must be text")
    try:
        request = json.loads(frame)
    except ValueError:
        raise ProtocolError("request frame is not valid JSON") from None
    if not isinstance(request, dict):
        raise ProtocolError("request frame must be a JSON object")
    route = request.get("route")
    if route not in routes:
        raise ProtocolError(f"unknown route: {route!r}")
    data = request.get("data")
    if not isinstance(data, str):
        raise ProtocolError("request data must be a string")
    return route, data


async def _relay(websocket: WebSocket, subscription: Subscription) -> None:
    """Forward samples until the client disconnects or the stream ends.

    Sending and listening run side by side so a disconnect is noticed between
    ticks rather than on the next failed send. Whichever side finishes first
    cancels the other; errors other than a disconnect propagate.
    """
    async with anyio.create_task_group() as tg:

        async def send_samples() -> None:
            try:
                async for sample in subscription:
                    await websocket.send_json(sample.to_dict())
            except WebSocketDisconnect:
                pass
            tg.cancel_scope.cancel()

        async def listen() -> None:
            await _drain_until_disconnect(websocket)
            tg.cancel_scope.cancel()

        tg.start_soon(send_samples)
        tg.start_soon(listen)


async def _drain_until_disconnect(websocket: WebSocket) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        logger.debug("Ignoring frame on streaming socket: %r", message.get("text") or message.get("bytes"))


async def _reject(websocket: WebSocket, client_ip: str, exc: ProtocolError) -> None:
    logger.info("Rejected socket request from %s: %s", client_ip, exc)
    await websocket.send_json({"error": str(exc)})
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
