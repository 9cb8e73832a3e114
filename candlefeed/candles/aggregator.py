from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from candlefeed.candles.store import CandleStore
from candlefeed.models.market import CandleBucket, CandleSnapshot, Tick

log = logging.getLogger("candle_aggregator")

# 30-second candles
CANDLE_INTERVAL_MS = 30_000


def period_start(ts_ms: int, interval_ms: int = CANDLE_INTERVAL_MS) -> int:
    """Round a ms timestamp down to the start of its candle window."""
    return (ts_ms // interval_ms) * interval_ms


class CandleAggregator:
    """
    Builds fixed-interval candles from trade ticks, one open bucket per symbol.

    Closing is driven by ticks only: a bucket is finalized the moment a tick
    from a later window arrives. Every call to ingest() returns what should be
    published, in order:
    - same window: [live]
    - new window:  [closed, live]
    - dropped:     []
    """

    def __init__(
        self,
        symbols: Iterable[str],
        store: Optional[CandleStore] = None,
        interval_ms: int = CANDLE_INTERVAL_MS,
    ):
        self.store = store if store is not None else CandleStore(symbols)
        self.interval_ms = interval_ms

    def ingest(self, tick: Tick) -> List[CandleSnapshot]:
        entry = self.store.entry(tick.symbol)
        if entry is None:
            log.debug("Dropping tick for unknown symbol=%s", tick.symbol)
            return []

        start = period_start(tick.ts_ms, self.interval_ms)
        current = entry.bucket

        # First tick for this symbol.
        if current is None:
            entry.bucket = CandleBucket.open_with(tick, start)
            entry.stamp()
            return [entry.bucket.snapshot(live=True)]

        # Late tick from a window we already moved past.
        if start < current.period_start:
            log.debug(
                "Dropping late tick symbol=%s ts_ms=%s current_start=%s",
                tick.symbol,
                tick.ts_ms,
                current.period_start,
            )
            return []

        # Still inside the current window -> update.
        if start == current.period_start:
            current.update(tick)
            entry.stamp()
            return [current.snapshot(live=True)]

        # Window rolled -> close old bucket and start a new one from this tick.
        out: List[CandleSnapshot] = []
        if current.trades:
            out.append(entry.finalize())

        entry.bucket = CandleBucket.open_with(tick, start)
        entry.stamp()
        out.append(entry.bucket.snapshot(live=True))
        return out

    def current_snapshot(self, symbol: str) -> Optional[CandleSnapshot]:
        """Live snapshot of the candle in progress, if there is one."""
        entry = self.store.entry(symbol)
        if entry is None or entry.bucket is None:
            return None
        return entry.bucket.snapshot(live=True)

    def history(self, symbol: str) -> List[CandleSnapshot]:
        entry = self.store.entry(symbol)
        return list(entry.closed) if entry is not None else []

    def last_tick_at(self, symbol: str) -> Optional[datetime]:
        entry = self.store.entry(symbol)
        return entry.last_tick_at if entry is not None else None
