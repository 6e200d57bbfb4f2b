"""SSE streaming endpoint for live stock prices."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .registry import SymbolStreamRegistry

logger = logging.getLogger(__name__)


def create_stream_router(registry: SymbolStreamRegistry) -> APIRouter:
    """Create the SSE streaming router bound to a stream registry."""
    router = APIRouter(tags=["streaming"])

    @router.get("/stocks/{symbol}")
    async def stream_prices(symbol: str, request: Request) -> StreamingResponse:
        """SSE endpoint emitting one price for ``symbol`` per tick.

        Every client streaming the same symbol receives the same events:

            data: {"symbol": "DEMO", "price": 89.06, "time": "2019-10-17T17:00:25.506109"}
        """
        return StreamingResponse(
            _generate_events(registry, symbol, request),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    registry: SymbolStreamRegistry,
    symbol: str,
    request: Request,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted price events.

    Stops when the client disconnects, either detected via
    request.is_disconnected() or by the server cancelling the generator.
    """
    # Tell the client to retry after 1 second if the connection drops
    yield "retry: 1000\n\n"

    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s (%s)", client_ip, symbol)

    try:
        async with registry.subscribe(symbol) as subscription:
            async for sample in subscription:
                if await request.is_disconnected():
                    logger.info("SSE client disconnected: %s (%s)", client_ip, symbol)
                    break
                yield f"data: {json.dumps(sample.to_dict())}\n\n"
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s (%s)", client_ip, symbol)
        raise
