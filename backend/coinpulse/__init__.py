"""coinpulse: rate-limited market data ingestion and signal analysis service."""
