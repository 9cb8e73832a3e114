from __future__ import annotations

import asyncio
import enum
import json
import logging
import math
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

import websockets

from candlefeed.providers.base import MarketDataProvider

log = logging.getLogger("polygon_provider")

DEFAULT_WS_URL = "wss://socket.polygon.io/stocks"


class FeedState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTH_PENDING = "auth_pending"
    SUBSCRIBED = "subscribed"


# -------------------------
# Upstream events, keyed by the "ev" tag
# -------------------------
@dataclass(frozen=True)
class StatusEvent:
    status: str
    message: str


@dataclass(frozen=True)
class TradeEvent:
    symbol: str
    price: float
    size: int
    t_ms: int


@dataclass(frozen=True)
class QuoteEvent:
    symbol: str


@dataclass(frozen=True)
class UnknownEvent:
    ev: Any


FeedEvent = Union[StatusEvent, TradeEvent, QuoteEvent, UnknownEvent]


def _finite(value: Any) -> Union[int, float]:
    # json.loads turns 1e999 into inf and accepts NaN
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"non-finite number {value!r}")
    return number


def parse_event(obj: Any) -> FeedEvent:
    """
    Turn one element of a Polygon message batch into a typed event.

    Raises ValueError/TypeError/KeyError for trade payloads with missing or
    bad fields; unknown tags become UnknownEvent.
    """
    if not isinstance(obj, dict):
        raise TypeError(f"expected object, got {type(obj).__name__}")

    ev = obj.get("ev")
    if ev == "status":
        return StatusEvent(status=str(obj.get("status", "")), message=str(obj.get("message", "")))
    if ev == "T":
        price = float(_finite(obj["p"]))
        size = int(_finite(obj["s"]))
        if price <= 0 or size < 0:
            raise ValueError(f"bad trade price={price} size={size}")
        return TradeEvent(symbol=str(obj["sym"]), price=price, size=size, t_ms=int(_finite(obj["t"])))
    if ev == "Q":
        return QuoteEvent(symbol=str(obj.get("sym", "")))
    return UnknownEvent(ev=ev)


class PolygonProvider(MarketDataProvider):
    """
    Polygon.io stocks WebSocket (live trades).

    connect -> auth -> on auth_success subscribe T.<SYM> per symbol -> trades.
    Any close/error goes back to DISCONNECTED and reconnects after a fixed
    delay, forever.
    """

    def __init__(
        self,
        api_key: str,
        ws_url: str = DEFAULT_WS_URL,
        reconnect_delay: float = 5.0,
        connect: Optional[Callable[..., Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if not api_key:
            raise RuntimeError("Missing Polygon API key. Set POLYGON_API_KEY in your .env.")

        self.api_key = api_key
        self.ws_url = ws_url
        self.reconnect_delay = reconnect_delay
        self._connect = connect or websockets.connect
        self._sleep = sleep

        self.state = FeedState.DISCONNECTED
        self.reconnect_attempts = 0
        self._closed = False

    def close(self) -> None:
        self._closed = True

    async def stream_ticks(self, symbols: list[str]) -> AsyncIterator[dict]:
        """
        Yields ticks:
          {"symbol": "...", "price": ..., "size": ..., "t_ms": ...}
        """
        wanted = [s.strip().upper() for s in symbols if s and s.strip()]

        while not self._closed:
            self.state = FeedState.CONNECTING
            log.warning("Connecting to Polygon.io url=%s", self.ws_url)
            try:
                async with self._connect(self.ws_url, ping_interval=20, ping_timeout=20) as ws:
                    log.warning("Connected to Polygon.io")
                    await ws.send(json.dumps({"action": "auth", "params": self.api_key}))
                    self.state = FeedState.AUTH_PENDING

                    async for raw in ws:
                        for tick in await self._handle_message(ws, raw, wanted):
                            yield tick

                log.warning("Disconnected from Polygon.io")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                log.warning("Polygon WS error: %s", e)
            finally:
                self.state = FeedState.DISCONNECTED

            if self._closed:
                break

            log.warning("Reconnecting to Polygon.io in %ss", self.reconnect_delay)
            await self._sleep(self.reconnect_delay)
            self.reconnect_attempts += 1

    async def _handle_message(self, ws: Any, raw: Any, wanted: list[str]) -> list[dict]:
        try:
            batch = json.loads(raw)
        except (TypeError, ValueError) as e:
            log.error("Error parsing Polygon data: %s", e)
            return []

        if isinstance(batch, dict):
            batch = [batch]
        if not isinstance(batch, list):
            log.error("Unexpected Polygon payload type=%s", type(batch).__name__)
            return []

        ticks: list[dict] = []
        for obj in batch:
            try:
                event = parse_event(obj)
            except (KeyError, TypeError, ValueError, OverflowError) as e:
                log.error("Skipping malformed Polygon event %r: %s", obj, e)
                continue

            if isinstance(event, StatusEvent):
                await self._on_status(ws, event, wanted)
            elif isinstance(event, TradeEvent):
                if self.state is not FeedState.SUBSCRIBED:
                    log.debug("Trade before subscribe ack symbol=%s", event.symbol)
                ticks.append(
                    {
                        "symbol": event.symbol,
                        "price": event.price,
                        "size": event.size,
                        "t_ms": event.t_ms,
                    }
                )
            elif isinstance(event, QuoteEvent):
                continue
            else:
                log.debug("Ignoring Polygon event ev=%r", event.ev)

        return ticks

    async def _on_status(self, ws: Any, event: StatusEvent, wanted: list[str]) -> None:
        log.warning("Polygon status: %s (%s)", event.message, event.status)

        if event.status == "auth_success" and self.state is FeedState.AUTH_PENDING:
            log.warning("Polygon authentication successful")
            for symbol in wanted:
                await ws.send(json.dumps({"action": "subscribe", "params": f"T.{symbol}"}))
                log.warning("Subscribed to %s trades", symbol)
            self.state = FeedState.SUBSCRIBED
        elif event.status == "auth_failed":
            log.error("Polygon authentication failed: %s", event.message)
