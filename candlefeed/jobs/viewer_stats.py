from __future__ import annotations

import asyncio
import logging

from candlefeed.subscriptions import SubscriptionDirectory

log = logging.getLogger("viewer_stats")


def log_viewer_counts(directory: SubscriptionDirectory) -> int:
    for symbol, count in sorted(directory.counts().items()):
        if count > 0:
            log.info("%s: %d viewer(s)", symbol, count)
    total = directory.total()
    log.info("Total subscribed viewers: %d", total)
    return total


async def viewer_stats_loop(directory: SubscriptionDirectory, interval: float) -> None:
    """Background loop: log who is watching what, every `interval` seconds."""
    while True:
        await asyncio.sleep(interval)
        log_viewer_counts(directory)
