"""Application configuration."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Market
    symbol: str = "BTCUSDT"
    bar_interval: str = "1h"
    bar_count: int = 100

    # Binance spot API
    binance_rest_url: str = "https://api.binance.com"
    binance_ws_url: str = "wss://stream.binance.com:9443/ws"

    # CoinGecko (backup OHLC provider)
    coingecko_url: str = "https://api.coingecko.com"
    coingecko_coin_id: str = "bitcoin"
    coingecko_vs_currency: str = "usd"
    coingecko_days: int = 5

    http_timeout: float = 10.0

    # Primary-provider HTTP statuses that switch to the backup provider.
    # Empty = switch on any failure. 451 is Binance's legal-restriction reply.
    ohlc_fallback_status_codes: list[int] = [451]

    # Live price: "stream" (trade WebSocket) or "poll" (ticker endpoint)
    price_mode: Literal["stream", "poll"] = "stream"
    price_max_age: float = 30.0

    # Scheduling (seconds)
    analysis_interval: float = 1.0
    settlement_interval: float = 1.0
    merged_schedule: bool = True
    auto_trade: bool = True

    # Predictions
    default_timeframe: str = "10m"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
