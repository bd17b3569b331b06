"""Signal classification rules."""

from coinpulse_core.strategy.rules import (
    SIGNAL_RULES,
    TREND_RULES,
    MarketSnapshot,
    Rule,
    classify_signal,
    classify_trend,
    first_match,
)

__all__ = [
    "SIGNAL_RULES",
    "TREND_RULES",
    "MarketSnapshot",
    "Rule",
    "classify_signal",
    "classify_trend",
    "first_match",
]
