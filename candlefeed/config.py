# candlefeed/config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from candlefeed.symbols import SYMBOLS

# Loads variables from a local .env file into environment variables (dev only).
load_dotenv()


@dataclass(frozen=True)
class Settings:
    # App config
    app_env: str
    log_level: str
    host: str
    port: int
    symbols: tuple[str, ...]
    candle_history_limit: int
    stats_interval_seconds: float

    # Live feed (Polygon). Empty key -> synthetic feed.
    polygon_api_key: str
    polygon_ws_url: str
    reconnect_delay_seconds: float

    # Synthetic feed
    synthetic_tick_seconds: float

    @property
    def feed_mode(self) -> str:
        return "live" if self.polygon_api_key else "synthetic"


def get_settings() -> Settings:
    """
    Reads env vars and returns a Settings object.
    """
    return Settings(
        app_env=os.getenv("APP_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT") or "3002"),
        symbols=SYMBOLS,
        candle_history_limit=int(os.getenv("CANDLE_HISTORY_LIMIT", "500")),
        stats_interval_seconds=float(os.getenv("STATS_INTERVAL_SECONDS", "30")),
        polygon_api_key=os.getenv("POLYGON_API_KEY", "").strip(),
        polygon_ws_url=os.getenv("POLYGON_WS_URL", "wss://socket.polygon.io/stocks"),
        reconnect_delay_seconds=float(os.getenv("RECONNECT_DELAY_SECONDS", "5")),
        synthetic_tick_seconds=float(os.getenv("SYNTHETIC_TICK_SECONDS", "1")),
    )
