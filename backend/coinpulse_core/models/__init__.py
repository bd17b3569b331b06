"""Data models."""

from coinpulse_core.models.analysis import AnalysisResult, Signal, Trend
from coinpulse_core.models.market import MarketCoin, PricePoint, PriceSeries

__all__ = [
    "AnalysisResult",
    "Signal",
    "Trend",
    "MarketCoin",
    "PricePoint",
    "PriceSeries",
]
