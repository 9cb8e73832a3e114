import unittest

from candlefeed.candles.store import CandleStore
from candlefeed.models.market import CandleBucket, Tick


def bucket(start, price=1.0):
    return CandleBucket.open_with(Tick(symbol="JOBY", price=price, size=1, ts_ms=start), start)


class TestCandleStore(unittest.TestCase):
    def test_one_entry_per_symbol(self):
        store = CandleStore(["JOBY", "ACHR"])

        self.assertIn("JOBY", store)
        self.assertNotIn("TSLA", store)
        self.assertIsNone(store.entry("TSLA"))
        self.assertEqual(store.symbols, frozenset({"JOBY", "ACHR"}))

    def test_finalize_moves_bucket_to_history(self):
        entry = CandleStore(["JOBY"]).entry("JOBY")
        self.assertIsNone(entry.finalize())

        entry.bucket = bucket(0, price=6.5)
        closed = entry.finalize()

        self.assertFalse(closed.live)
        self.assertEqual(closed.o, 6.5)
        self.assertIsNone(entry.bucket)
        self.assertEqual(list(entry.closed), [closed])

    def test_history_is_bounded(self):
        entry = CandleStore(["JOBY"], max_history=3).entry("JOBY")
        for i in range(5):
            entry.bucket = bucket(i * 30_000)
            entry.finalize()

        self.assertEqual([c.period_start for c in entry.closed], [60_000, 90_000, 120_000])

    def test_stamp(self):
        entry = CandleStore(["JOBY"]).entry("JOBY")
        self.assertIsNone(entry.last_tick_at)

        entry.stamp()

        self.assertIsNotNone(entry.last_tick_at.tzinfo)


if __name__ == "__main__":
    unittest.main()
