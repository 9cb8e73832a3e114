from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, WebSocket
from starlette.websockets import WebSocketState

from candlefeed.state import Services
from candlefeed.symbols import normalize

router = APIRouter()
log = logging.getLogger("viewer_ws")


class WebSocketViewer:
    """A connected chart viewer. Hashed by identity, so it can live in sets."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, message: str) -> None:
        await self.websocket.send_text(message)

    async def close(self, code: int = 1001) -> None:
        if self.is_open:
            await self.websocket.close(code=code)


async def handle_viewer_message(services: Services, viewer: Any, raw: Any) -> None:
    """
    Apply one inbound viewer message.

    Only {"action": "subscribe", "symbol": "..."} does anything. Bad JSON is
    logged and ignored; the connection stays up.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        log.error("Error parsing viewer message: %s", e)
        return

    if not isinstance(data, dict):
        log.error("Ignoring viewer message of type %s", type(data).__name__)
        return

    action = data.get("action")
    if action != "subscribe":
        log.debug("Ignoring viewer action=%r", action)
        return

    symbol = normalize(data.get("symbol"))
    if not services.directory.subscribe(viewer, symbol):
        return

    # Catch-up: show the candle in progress right away.
    snapshot = services.aggregator.current_snapshot(symbol)
    if snapshot is not None:
        await services.publisher.send_to(viewer, snapshot)


@router.websocket("/")
@router.websocket("/ws")
async def viewer_ws(websocket: WebSocket):
    services: Services = websocket.app.state.services

    await websocket.accept()
    viewer = WebSocketViewer(websocket)
    services.viewers.add(viewer)
    log.info("New viewer connected")

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                log.info("Viewer disconnected code=%s", message.get("code"))
                break

            raw = message.get("text")
            if raw is None and message.get("bytes") is not None:
                raw = message["bytes"].decode("utf-8", errors="replace")

            await handle_viewer_message(services, viewer, raw)
    finally:
        services.directory.unsubscribe_all(viewer)
        services.viewers.discard(viewer)


@router.get("/health")
def health(request: Request):
    services: Services = request.app.state.services
    provider = request.app.state.provider
    return {
        "status": "ok",
        "app_env": services.settings.app_env,
        "feed_mode": services.settings.feed_mode,
        "provider_loaded": provider.__class__.__name__,
        "viewers": len(services.viewers),
        "subscriptions": services.directory.counts(),
    }


@router.get("/symbols")
def symbols(request: Request):
    services: Services = request.app.state.services
    return {"symbols": list(services.settings.symbols)}


@router.get("/candles/{symbol}")
def candles(request: Request, symbol: str):
    """
    Current live candle plus recently closed ones, from memory.
    """
    services: Services = request.app.state.services
    symbol = normalize(symbol)
    if symbol not in services.settings.symbols:
        raise HTTPException(status_code=404, detail=f"Unknown symbol '{symbol}'")

    live = services.aggregator.current_snapshot(symbol)
    history = services.aggregator.history(symbol)
    last = services.aggregator.last_tick_at(symbol)

    return {
        "symbol": symbol,
        "live": live.to_dict() if live else None,
        "history": [c.to_dict() for c in history],
        "last_updated": last.isoformat() if last else None,
    }
