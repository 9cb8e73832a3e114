from __future__ import annotations

# Closed set of instruments served by this process.
SYMBOLS: tuple[str, ...] = ("JOBY", "ACHR", "SVIX", "UVIX", "VXX", "WULF")

# Starting prices for the synthetic feed.
BASE_PRICES: dict[str, float] = {
    "JOBY": 6.50,
    "ACHR": 4.25,
    "SVIX": 45.80,
    "UVIX": 23.40,
    "VXX": 38.90,
    "WULF": 8.75,
}

DEFAULT_BASE_PRICE = 10.00


def is_supported(symbol: object) -> bool:
    return isinstance(symbol, str) and symbol in SYMBOLS


def base_price(symbol: str) -> float:
    return BASE_PRICES.get(symbol, DEFAULT_BASE_PRICE)


def normalize(symbol: object) -> object:
    """Viewer input is case-insensitive: ' joby ' -> 'JOBY'. Non-strings pass through."""
    if isinstance(symbol, str):
        return symbol.strip().upper()
    return symbol
