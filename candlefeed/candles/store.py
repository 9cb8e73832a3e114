from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, Dict, Iterable, Optional

from candlefeed.models.market import CandleBucket, CandleSnapshot


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SymbolCandles:
    """
    Everything held in memory for one symbol.

    bucket: the window being built (None until the first tick)
    closed: finalized candles, oldest first, bounded by the deque's maxlen
    last_tick_at: wall-clock time of the last accepted tick
    """
    bucket: Optional[CandleBucket] = None
    closed: Deque[CandleSnapshot] = field(default_factory=deque)
    last_tick_at: Optional[datetime] = None

    def stamp(self) -> None:
        self.last_tick_at = utcnow()

    def finalize(self) -> Optional[CandleSnapshot]:
        """Close the open bucket into history and return its final snapshot."""
        if self.bucket is None:
            return None
        snapshot = self.bucket.snapshot(live=False)
        self.closed.append(snapshot)
        self.bucket = None
        return snapshot


class CandleStore:
    """Per-symbol candle working set, one entry per registry symbol."""

    def __init__(self, symbols: Iterable[str], max_history: int = 500):
        self.max_history = max_history
        self._entries: Dict[str, SymbolCandles] = {
            s: SymbolCandles(closed=deque(maxlen=max_history)) for s in symbols
        }

    def __contains__(self, symbol: object) -> bool:
        return symbol in self._entries

    @property
    def symbols(self) -> frozenset:
        return frozenset(self._entries)

    def entry(self, symbol: str) -> Optional[SymbolCandles]:
        return self._entries.get(symbol)
