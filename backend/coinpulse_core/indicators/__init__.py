"""Technical indicators (pure math, no I/O)."""

from coinpulse_core.indicators.indicators import (
    RSI_NEUTRAL,
    IndicatorSnapshot,
    compute_indicators,
    rsi,
    sma,
)

__all__ = [
    "RSI_NEUTRAL",
    "IndicatorSnapshot",
    "compute_indicators",
    "rsi",
    "sma",
]
