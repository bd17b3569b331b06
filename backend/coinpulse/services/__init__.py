"""Business services."""

from coinpulse.services.catalog import (
    FALLBACK_MEME_COINS,
    MEME_COIN_IDS,
    POPULAR_COINS,
    CoinInfo,
)
from coinpulse.services.market_analysis import (
    AnalysisReport,
    MarketAnalysisService,
    MemeCoinListing,
)

__all__ = [
    "FALLBACK_MEME_COINS",
    "MEME_COIN_IDS",
    "POPULAR_COINS",
    "CoinInfo",
    "AnalysisReport",
    "MarketAnalysisService",
    "MemeCoinListing",
]
