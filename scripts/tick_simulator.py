from __future__ import annotations

from candlefeed.candles.aggregator import CandleAggregator
from candlefeed.models.market import Tick
from candlefeed.providers.synthetic import SyntheticProvider, now_ms


def run(symbol: str = "JOBY", seconds: int = 120) -> None:
    """
    Generates fake ticks for `seconds` simulated seconds and feeds them into
    the aggregator, without a server or a real clock.

    - One tick per second, random walk from SyntheticProvider.
    - Every closed (non-live) candle is printed.
    """
    aggregator = CandleAggregator([symbol])
    generator = SyntheticProvider()

    # Start at a 30s boundary so candles look clean.
    ts_ms = (now_ms() // aggregator.interval_ms) * aggregator.interval_ms

    print(f"Simulating ticks for {symbol} for {seconds} seconds...\n")

    for _ in range(seconds):
        msg = generator.next_tick(symbol, ts_ms)
        tick = Tick(symbol=symbol, price=msg["price"], size=msg["size"], ts_ms=ts_ms)

        for snap in aggregator.ingest(tick):
            if snap.live:
                continue
            c = snap.to_dict()
            print(
                f"[CLOSED] {c['symbol']} {c['timestamp']} "
                f"O={c['open']} H={c['high']} L={c['low']} C={c['close']} V={c['volume']}"
            )

        ts_ms += 1000

    print("\nDone.")
    print(f"Closed candles stored: {len(aggregator.history(symbol))}")


if __name__ == "__main__":
    run()
