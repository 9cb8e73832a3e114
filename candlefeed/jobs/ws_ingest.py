from __future__ import annotations

import logging

from candlefeed.candles.aggregator import CandleAggregator
from candlefeed.models.market import Tick
from candlefeed.providers.base import MarketDataProvider
from candlefeed.publisher import FanoutPublisher

log = logging.getLogger("ws_ingest")


def to_tick(msg: dict) -> Tick:
    return Tick(
        symbol=str(msg["symbol"]),
        price=float(msg["price"]),
        size=int(msg["size"]),
        ts_ms=int(msg["t_ms"]),
    )


async def ws_ingest_loop(
    provider: MarketDataProvider,
    aggregator: CandleAggregator,
    publisher: FanoutPublisher,
    symbols: list[str],
) -> None:
    """
    Background loop:
    - reads tick dicts from provider.stream_ticks()
    - converts to Tick dataclass
    - folds into the aggregator and publishes whatever it emits, in order
    """
    async for msg in provider.stream_ticks(symbols):
        try:
            tick = to_tick(msg)
        except (KeyError, TypeError, ValueError) as e:
            log.debug("Skipping malformed tick %r: %s", msg, e)
            continue

        for snapshot in aggregator.ingest(tick):
            await publisher.publish(snapshot)
