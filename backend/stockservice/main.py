"""FastAPI application streaming synthetic stock prices.

Usage:
    stockservice                      # console script, honours HOST/PORT
    uvicorn --factory stockservice.main:create_app --port 8080
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from .config import Settings, load_settings
from .prices import SymbolStreamRegistry, create_messaging_router, create_stream_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app with a fresh SymbolStreamRegistry.

    The registry is created up front so routers can bind to it; its streams
    are stopped when the app shuts down.
    """
    settings = settings or load_settings()
    registry = SymbolStreamRegistry(
        interval=settings.tick_interval,
        evict_idle=settings.evict_idle_streams,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Stock service starting (tick interval %.2fs, evict idle: %s)",
            settings.tick_interval,
            settings.evict_idle_streams,
        )
        yield
        await registry.stop()
        logger.info("Stock service stopped")

    app = FastAPI(title="Stock Price Service", lifespan=lifespan)
    app.state.settings = settings
    app.state.registry = registry

    app.include_router(create_stream_router(registry))
    app.include_router(create_messaging_router(registry))

    @app.get("/health", tags=["health"])
    async def health(request: Request) -> dict:
        return {"status": "ok", "symbols": len(request.app.state.registry)}

    return app


def main() -> None:
    import uvicorn

    settings = load_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
