from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import AsyncIterator, Callable, Dict, List, Optional

from candlefeed.candles.aggregator import CANDLE_INTERVAL_MS, period_start
from candlefeed.providers.base import MarketDataProvider
from candlefeed.symbols import base_price

log = logging.getLogger("synthetic_provider")

MIN_PRICE = 0.1


def now_ms() -> int:
    return int(time.time() * 1000)


class SyntheticProvider(MarketDataProvider):
    """
    Random-walk tick generator, used when no live API key is configured.

    Every `tick_interval` seconds each symbol gets one tick stamped with the
    wall clock. The first tick of a new candle window takes a wider step and a
    bigger size (an opening print); ticks inside a window move less and trade
    smaller. Prices never drop below MIN_PRICE.
    """

    def __init__(
        self,
        tick_interval: float = 1.0,
        interval_ms: int = CANDLE_INTERVAL_MS,
        rng: Optional[random.Random] = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.tick_interval = tick_interval
        self.interval_ms = interval_ms
        self.rng = rng or random.Random()
        self.clock = clock

        self.prices: Dict[str, float] = {}
        self._last_period: Dict[str, int] = {}
        self._closed = False

    def close(self) -> None:
        self._closed = True

    def next_tick(self, symbol: str, ts_ms: int) -> dict:
        """Advance the random walk for `symbol` and return one tick dict."""
        price = self.prices.get(symbol)
        if price is None:
            price = base_price(symbol)

        start = period_start(ts_ms, self.interval_ms)
        if self._last_period.get(symbol) != start:
            step = (self.rng.random() - 0.5) * 4
            size = self.rng.randint(1000, 10999)
            self._last_period[symbol] = start
        else:
            step = (self.rng.random() - 0.5) * 2
            size = self.rng.randint(0, 499)

        price = max(MIN_PRICE, price + step)
        self.prices[symbol] = price

        return {"symbol": symbol, "price": price, "size": size, "t_ms": ts_ms}

    async def stream_ticks(self, symbols: List[str]) -> AsyncIterator[dict]:
        for symbol in symbols:
            log.info("Started data generation for %s", symbol)

        while not self._closed:
            ts_ms = self.clock()
            for symbol in symbols:
                yield self.next_tick(symbol, ts_ms)
            await asyncio.sleep(self.tick_interval)
