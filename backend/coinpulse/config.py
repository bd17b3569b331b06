"""Application configuration."""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Upstream data provider
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    tracked_host: str = "api.coingecko.com"
    vs_currency: str = "usd"
    user_agent: str = "CryptoMarkets/1.0"
    request_timeout: float = 30.0

    # Cache
    cache_ttl_seconds: float = 600.0  # 10 minutes

    # Request broker (provider allows 30-50 req/min; stay below it)
    min_request_spacing: float = 3.0
    quota_per_window: int = 25
    quota_window_seconds: float = 60.0
    max_retries: int = 2
    initial_retry_delay: float = 2.0
    secondary_retry_delay: float = 1.5  # per-coin chart requests
    max_backoff: float = 30.0

    # Analysis
    markets_per_page: int = 10
    analysis_top_n: int = 5
    chart_days: int = 30
    min_history: int = 20
    analysis_max_age: float = 60.0  # seconds before get_report runs a new pass

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
