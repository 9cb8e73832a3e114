import logging

from candlefeed.config import Settings
from candlefeed.providers.base import MarketDataProvider
from candlefeed.providers.polygon import PolygonProvider
from candlefeed.providers.synthetic import SyntheticProvider

log = logging.getLogger("provider_loader")


def get_provider(settings: Settings) -> MarketDataProvider:
    """
    Provider loader / factory.

    A Polygon API key selects the live feed; without one we fall back to
    simulated data. Decided once at startup.
    This is the single place that knows about concrete providers.
    """
    if settings.feed_mode == "live":
        log.warning("Found Polygon API key, connecting to live data")
        return PolygonProvider(
            api_key=settings.polygon_api_key,
            ws_url=settings.polygon_ws_url,
            reconnect_delay=settings.reconnect_delay_seconds,
        )

    if settings.feed_mode == "synthetic":
        log.warning("POLYGON_API_KEY not set, using simulated data instead")
        return SyntheticProvider(tick_interval=settings.synthetic_tick_seconds)

    raise ValueError(f"Unknown feed mode '{settings.feed_mode}'. Expected: live, synthetic")
