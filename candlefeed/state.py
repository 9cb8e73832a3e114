from dataclasses import dataclass, field

from candlefeed.candles.aggregator import CandleAggregator
from candlefeed.candles.store import CandleStore
from candlefeed.config import Settings
from candlefeed.publisher import FanoutPublisher
from candlefeed.subscriptions import SubscriptionDirectory


@dataclass
class Services:
    """In-memory state for one running process, owned by the app."""
    settings: Settings
    aggregator: CandleAggregator
    directory: SubscriptionDirectory
    publisher: FanoutPublisher
    # every open viewer socket, subscribed or not (closed on shutdown)
    viewers: set = field(default_factory=set)


def build_services(settings: Settings) -> Services:
    store = CandleStore(settings.symbols, max_history=settings.candle_history_limit)
    aggregator = CandleAggregator(settings.symbols, store=store)
    directory = SubscriptionDirectory(settings.symbols)
    return Services(
        settings=settings,
        aggregator=aggregator,
        directory=directory,
        publisher=FanoutPublisher(directory),
    )
