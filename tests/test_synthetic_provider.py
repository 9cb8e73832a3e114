import unittest

from candlefeed.providers.synthetic import MIN_PRICE, SyntheticProvider
from candlefeed.symbols import BASE_PRICES, SYMBOLS


class LowRandom:
    """Always draws the smallest value."""

    def random(self):
        return 0.0

    def randint(self, a, b):
        return a


class TestSyntheticProvider(unittest.TestCase):
    def test_first_tick_of_window_is_an_opening_print(self):
        gen = SyntheticProvider(rng=LowRandom())

        opening = gen.next_tick("JOBY", 30_000)
        inside = gen.next_tick("JOBY", 31_000)

        self.assertAlmostEqual(opening["price"], BASE_PRICES["JOBY"] - 2.0)
        self.assertEqual(opening["size"], 1000)
        self.assertAlmostEqual(inside["price"], BASE_PRICES["JOBY"] - 3.0)
        self.assertEqual(inside["size"], 0)
        self.assertEqual(inside["t_ms"], 31_000)

    def test_price_stays_positive(self):
        gen = SyntheticProvider(rng=LowRandom())

        prices = [gen.next_tick("ACHR", i * 1_000)["price"] for i in range(20)]

        self.assertTrue(all(p >= MIN_PRICE for p in prices))
        self.assertEqual(prices[-1], MIN_PRICE)

    def test_sizes_bounded(self):
        gen = SyntheticProvider()
        for i in range(200):
            t = gen.next_tick("VXX", i * 1_000)
            self.assertGreater(t["price"], 0)
            self.assertGreaterEqual(t["size"], 0)
            self.assertLessEqual(t["size"], 10999)


class TestSyntheticStream(unittest.IsolatedAsyncioTestCase):
    async def test_one_tick_per_symbol_per_round_until_closed(self):
        gen = SyntheticProvider(tick_interval=0, clock=lambda: 90_000)
        stream = gen.stream_ticks(list(SYMBOLS))

        round_one = [await stream.__anext__() for _ in SYMBOLS]
        gen.close()

        self.assertEqual([t["symbol"] for t in round_one], list(SYMBOLS))
        self.assertTrue(all(t["t_ms"] == 90_000 for t in round_one))
        with self.assertRaises(StopAsyncIteration):
            await stream.__anext__()


if __name__ == "__main__":
    unittest.main()
