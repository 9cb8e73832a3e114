from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Tick:
    """
    Tick = a single trade print.

    symbol: which stock (e.g., JOBY)
    price: traded price
    size: traded size (shares)
    ts_ms: exchange timestamp, milliseconds since epoch
    """
    symbol: str
    price: float
    size: int
    ts_ms: int


@dataclass
class CandleBucket:
    """
    The candle being built for one symbol.

    period_start: start of the candle window in ms (aligned to the interval)
    o/h/l/c: open/high/low/close at full precision
    v: summed size of every trade folded in
    trades: the ticks folded into this window, in arrival order
    """
    symbol: str
    period_start: int
    o: float
    h: float
    l: float
    c: float
    v: int
    trades: list[Tick] = field(default_factory=list)

    @classmethod
    def open_with(cls, tick: Tick, period_start: int) -> "CandleBucket":
        return cls(
            symbol=tick.symbol,
            period_start=period_start,
            o=tick.price,
            h=tick.price,
            l=tick.price,
            c=tick.price,
            v=tick.size,
            trades=[tick],
        )

    def update(self, tick: Tick) -> None:
        """Fold one more tick into this candle."""
        self.h = max(self.h, tick.price)
        self.l = min(self.l, tick.price)
        self.c = tick.price
        self.v += tick.size
        self.trades.append(tick)

    def snapshot(self, live: bool) -> "CandleSnapshot":
        return CandleSnapshot(
            symbol=self.symbol,
            period_start=self.period_start,
            o=self.o,
            h=self.h,
            l=self.l,
            c=self.c,
            v=self.v,
            live=live,
        )


@dataclass(frozen=True)
class CandleSnapshot:
    """
    Immutable copy of a candle, ready to send.

    live=True means the window is still open and the candle will keep changing.
    Prices are rounded to cents only when serialized.
    """
    symbol: str
    period_start: int
    o: float
    h: float
    l: float
    c: float
    v: int
    live: bool = False

    def to_dict(self) -> dict:
        out = {
            "symbol": self.symbol,
            "timestamp": self.period_start,
            "open": round(self.o, 2),
            "high": round(self.h, 2),
            "low": round(self.l, 2),
            "close": round(self.c, 2),
            "volume": int(self.v),
        }
        if self.live:
            out["live"] = True
        return out
