import asyncio
import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI

from candlefeed.api.routes import router as api_router
from candlefeed.config import Settings, get_settings
from candlefeed.jobs.viewer_stats import viewer_stats_loop
from candlefeed.jobs.ws_ingest import ws_ingest_loop
from candlefeed.providers.base import MarketDataProvider
from candlefeed.providers.loader import get_provider
from candlefeed.state import build_services

log = logging.getLogger("candlefeed")

VIEWER_CLOSE_TIMEOUT = 2.0


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[MarketDataProvider] = None,
) -> FastAPI:
    settings = settings or get_settings()
    provider = provider or get_provider(settings)
    services = build_services(settings)

    app = FastAPI(title="Candlefeed", version="0.1.0")
    app.state.settings = settings
    app.state.provider = provider
    app.state.services = services
    app.state.tasks = []
    app.include_router(api_router)

    @app.on_event("startup")
    async def _startup():
        # Feed -> aggregator -> viewers
        app.state.tasks.append(
            asyncio.create_task(
                ws_ingest_loop(
                    provider=provider,
                    aggregator=services.aggregator,
                    publisher=services.publisher,
                    symbols=list(settings.symbols),
                )
            )
        )
        app.state.tasks.append(
            asyncio.create_task(
                viewer_stats_loop(services.directory, settings.stats_interval_seconds)
            )
        )
        log.warning(
            "Candle server running on ws://%s:%d feed=%s",
            settings.host,
            settings.port,
            settings.feed_mode,
        )

    @app.on_event("shutdown")
    async def _shutdown():
        log.warning("Shutting down server...")
        provider.close()

        # Cancelling the ingest task closes the upstream socket.
        tasks = app.state.tasks
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        tasks.clear()
        await services.publisher.cancel_pending()

        for viewer in list(services.viewers):
            try:
                await asyncio.wait_for(viewer.close(code=1001), timeout=VIEWER_CLOSE_TIMEOUT)
            except Exception as e:
                log.debug("Viewer close failed: %s", e)
        services.viewers.clear()

    return app


def run() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
