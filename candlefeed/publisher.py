from __future__ import annotations

import asyncio
import json
import logging
from functools import partial
from typing import Protocol, Set

from candlefeed.models.market import CandleSnapshot
from candlefeed.subscriptions import SubscriptionDirectory

log = logging.getLogger("publisher")


class ViewerConnection(Protocol):
    """What the publisher needs from a viewer socket."""

    @property
    def is_open(self) -> bool: ...

    async def send(self, message: str) -> None: ...


class FanoutPublisher:
    """
    Pushes candle snapshots to every viewer following the symbol.

    Fire and forget: each send runs as its own task, so a viewer that stops
    reading never holds up the ingest loop or the other viewers. Tasks start
    in publish order, which keeps per-viewer order. Closed viewers are
    skipped; a send that fails prunes the viewer. Nothing is retried.
    """

    def __init__(self, directory: SubscriptionDirectory):
        self.directory = directory
        self._pending: Set[asyncio.Task] = set()

    async def publish(self, snapshot: CandleSnapshot) -> int:
        """Start sending `snapshot` to its symbol's viewers. Returns how many sends started."""
        members = self.directory.members_of(snapshot.symbol)
        if not members:
            return 0

        message = json.dumps(snapshot.to_dict())
        started = 0
        for conn in members:
            if self._dispatch(conn, message):
                started += 1

        log.debug(
            "Sent %s candle close=%.2f vol=%d live=%s to %d viewer(s)",
            snapshot.symbol,
            snapshot.c,
            snapshot.v,
            snapshot.live,
            started,
        )
        return started

    async def send_to(self, conn: ViewerConnection, snapshot: CandleSnapshot) -> bool:
        """One-off push to a single viewer (catch-up after subscribe)."""
        return self._dispatch(conn, json.dumps(snapshot.to_dict()))

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for every send started so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def cancel_pending(self) -> None:
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _dispatch(self, conn: ViewerConnection, message: str) -> bool:
        if not conn.is_open:
            return False
        task = asyncio.create_task(conn.send(message))
        self._pending.add(task)
        task.add_done_callback(partial(self._on_sent, conn))
        return True

    def _on_sent(self, conn: ViewerConnection, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        e = task.exception()
        if e is not None:
            log.debug("Send failed, pruning viewer: %s", e)
            self.directory.unsubscribe_all(conn)
