from __future__ import annotations

import logging
from typing import Dict, Hashable, Iterable, Optional, Set

log = logging.getLogger("subscriptions")


class SubscriptionDirectory:
    """
    symbol -> set of viewer connections.

    A connection follows one symbol at a time: subscribing again moves it.
    Only touched from the event loop, so there is no locking.
    """

    def __init__(self, symbols: Iterable[str]):
        self.symbols = frozenset(symbols)
        self._members: Dict[str, Set[Hashable]] = {s: set() for s in self.symbols}
        self._current: Dict[Hashable, str] = {}

    def subscribe(self, connection: Hashable, symbol: object) -> bool:
        """
        Move `connection` to `symbol`.

        The previous subscription is always dropped first, so an invalid
        symbol leaves the connection subscribed to nothing. Returns True when
        the connection ends up subscribed.
        """
        previous = self._current.get(connection)
        if previous == symbol:
            return True

        if previous is not None:
            self._remove(connection)
            log.info("Viewer unsubscribed from %s", previous)

        if not isinstance(symbol, str) or symbol not in self.symbols:
            log.warning("Invalid stock symbol: %r", symbol)
            return False

        self._members[symbol].add(connection)
        self._current[connection] = symbol
        log.info("Viewer subscribed to %s", symbol)
        return True

    def unsubscribe_all(self, connection: Hashable) -> None:
        symbol = self._remove(connection)
        if symbol is not None:
            log.info("Viewer removed from %s", symbol)

    def members_of(self, symbol: str) -> frozenset:
        """Point-in-time copy of the viewers following `symbol`."""
        return frozenset(self._members.get(symbol, ()))

    def subscription_of(self, connection: Hashable) -> Optional[str]:
        return self._current.get(connection)

    def counts(self) -> Dict[str, int]:
        return {s: len(m) for s, m in self._members.items()}

    def total(self) -> int:
        return len(self._current)

    def _remove(self, connection: Hashable) -> Optional[str]:
        symbol = self._current.pop(connection, None)
        if symbol is not None:
            self._members[symbol].discard(connection)
        return symbol
