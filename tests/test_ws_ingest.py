import asyncio
import json
import unittest

from candlefeed.candles.aggregator import CandleAggregator
from candlefeed.jobs.ws_ingest import to_tick, ws_ingest_loop
from candlefeed.providers.base import MarketDataProvider
from candlefeed.providers.synthetic import SyntheticProvider
from candlefeed.publisher import FanoutPublisher
from candlefeed.subscriptions import SubscriptionDirectory
from candlefeed.symbols import SYMBOLS


class ListProvider(MarketDataProvider):
    def __init__(self, messages):
        self.messages = messages

    async def stream_ticks(self, symbols):
        for msg in self.messages:
            yield msg


class FakeViewer:
    is_open = True

    def __init__(self):
        self.sent = []

    async def send(self, message):
        self.sent.append(json.loads(message))


class StalledViewer:
    is_open = True

    async def send(self, message):
        await asyncio.Event().wait()


class TestWsIngest(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.aggregator = CandleAggregator(SYMBOLS)
        self.directory = SubscriptionDirectory(SYMBOLS)
        self.publisher = FanoutPublisher(self.directory)
        self.viewer = FakeViewer()
        self.directory.subscribe(self.viewer, "JOBY")

    async def asyncTearDown(self):
        await self.publisher.cancel_pending()

    async def test_ticks_become_ordered_candles(self):
        provider = ListProvider(
            [
                {"symbol": "JOBY", "price": 6.50, "size": 100, "t_ms": 0},
                {"symbol": "ACHR", "price": 4.25, "size": 5, "t_ms": 1_000},
                {"symbol": "JOBY", "price": "oops", "size": 1, "t_ms": 2_000},
                {"symbol": "JOBY", "size": 1, "t_ms": 3_000},
                {"symbol": "JOBY", "price": 6.55, "size": 50, "t_ms": 10_000},
                {"symbol": "JOBY", "price": 6.60, "size": 200, "t_ms": 35_000},
            ]
        )

        await ws_ingest_loop(provider, self.aggregator, self.publisher, list(SYMBOLS))
        await self.publisher.drain()

        self.assertEqual([c["symbol"] for c in self.viewer.sent], ["JOBY"] * 4)
        self.assertEqual([c.get("live", False) for c in self.viewer.sent], [True, True, False, True])
        self.assertEqual([c["volume"] for c in self.viewer.sent], [100, 150, 150, 200])
        self.assertEqual(self.aggregator.current_snapshot("ACHR").v, 5)

    async def test_stalled_viewer_does_not_stop_ingest(self):
        achr_viewer = FakeViewer()
        self.directory.subscribe(StalledViewer(), "JOBY")
        self.directory.subscribe(achr_viewer, "ACHR")
        provider = ListProvider(
            [
                {"symbol": "JOBY", "price": 6.50, "size": 1, "t_ms": 0},
                {"symbol": "JOBY", "price": 6.51, "size": 1, "t_ms": 1_000},
                {"symbol": "ACHR", "price": 4.25, "size": 7, "t_ms": 2_000},
            ]
        )

        await asyncio.wait_for(
            ws_ingest_loop(provider, self.aggregator, self.publisher, list(SYMBOLS)),
            timeout=1,
        )
        for _ in range(3):
            await asyncio.sleep(0)

        self.assertEqual([c["symbol"] for c in achr_viewer.sent], ["ACHR"])
        self.assertEqual([c["close"] for c in self.viewer.sent], [6.5, 6.51])

    async def test_synthetic_cadence_closes_candles(self):
        clock = {"now": 0}

        def fake_clock():
            clock["now"] += 1_000
            return clock["now"]

        generator = SyntheticProvider(tick_interval=0, clock=fake_clock)
        seen = 0
        async for msg in generator.stream_ticks(["JOBY"]):
            for snap in self.aggregator.ingest(to_tick(msg)):
                await self.publisher.publish(snap)
            seen += 1
            if seen == 61:
                generator.close()
        await self.publisher.drain()

        closed = [c for c in self.viewer.sent if not c.get("live")]
        self.assertEqual([c["timestamp"] for c in closed], [0, 30_000])


class TestToTick(unittest.TestCase):
    def test_coerces_types(self):
        t = to_tick({"symbol": "JOBY", "price": "6.5", "size": 10.0, "t_ms": "1000"})
        self.assertEqual((t.price, t.size, t.ts_ms), (6.5, 10, 1000))

    def test_missing_field(self):
        with self.assertRaises(KeyError):
            to_tick({"symbol": "JOBY", "price": 1.0})


if __name__ == "__main__":
    unittest.main()
