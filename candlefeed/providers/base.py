from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List


class MarketDataProvider(ABC):
    """
    Provider contract (interface).

    Any provider must implement:
    - stream_ticks(): endless async iterator of trade dicts
        {"symbol": "JOBY", "price": 6.5, "size": 100, "t_ms": 1700000000000}
    - close(): stop producing (no further reconnects)
    """

    @abstractmethod
    def stream_ticks(self, symbols: List[str]) -> AsyncIterator[Dict]:
        raise NotImplementedError

    def close(self) -> None:
        pass
