"""Per-coin analysis: indicators plus rule-table classification."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Iterable

from coinpulse_core.indicators import compute_indicators
from coinpulse_core.models import AnalysisResult, MarketCoin, PriceSeries
from coinpulse_core.strategy import classify_signal, classify_trend

logger = logging.getLogger(__name__)

# Minimum number of price samples before a coin is analyzed
MIN_HISTORY = 20


class CoinNotAnalyzable(ValueError):
    """Raised when a coin cannot be analyzed and is left out of the results."""

    def __init__(self, coin_id: str, message: str):
        self.coin_id = coin_id
        super().__init__(message)


class InsufficientHistory(CoinNotAnalyzable):
    """Raised when a series is too short to analyze."""

    def __init__(self, coin_id: str, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            coin_id,
            f"insufficient history for {coin_id}: {available} < {required} points",
        )


class MissingPrice(CoinNotAnalyzable):
    """Raised when the listing row carries no current price."""

    def __init__(self, coin_id: str):
        super().__init__(coin_id, f"no current price for {coin_id}")


def analyze_coin(
    coin: MarketCoin,
    series: PriceSeries,
    min_history: int = MIN_HISTORY,
    now: datetime | None = None,
) -> AnalysisResult:
    """Analyze one coin.

    Indicators come from the price history, while the price and 24h change
    are taken from the live listing row.

    Raises:
        MissingPrice: If the listing row has no current price.
        InsufficientHistory: If the series has fewer than ``min_history`` points.
    """
    if coin.current_price is None:
        raise MissingPrice(coin.id)

    prices = series.prices
    if len(prices) < min_history:
        raise InsufficientHistory(coin.id, len(prices), min_history)

    indicators = compute_indicators(prices)
    change = coin.change_24h
    signal, reason = classify_signal(
        coin.current_price, indicators.sma20, indicators.sma50, indicators.rsi, change
    )
    trend = classify_trend(
        coin.current_price, indicators.sma20, indicators.sma50, indicators.rsi, change
    )

    return AnalysisResult(
        coin_id=coin.id,
        name=coin.name,
        symbol=coin.symbol.upper(),
        price=coin.current_price,
        price_change_24h=change,
        sma20=indicators.sma20,
        sma50=indicators.sma50,
        rsi=indicators.rsi,
        signal=signal,
        signal_reason=reason,
        trend=trend,
        volume=coin.total_volume,
        market_cap=coin.market_cap,
        computed_at=now or datetime.now(timezone.utc),
    )


def analyze_markets(
    pairs: Iterable[tuple[MarketCoin, PriceSeries]],
    min_history: int = MIN_HISTORY,
    now: datetime | None = None,
) -> tuple[list[AnalysisResult], list[str]]:
    """Analyze several coins, skipping those that cannot be analyzed.

    Every result shares one ``computed_at`` stamp.

    Returns:
        (results, skipped coin ids). Skipped coins are logged and left out
        of the results, so the list may be shorter than the input.
    """
    now = now or datetime.now(timezone.utc)
    results = []
    skipped = []
    for coin, series in pairs:
        try:
            results.append(analyze_coin(coin, series, min_history, now=now))
        except CoinNotAnalyzable as e:
            logger.warning(f"Skipping {coin.name}: {e}")
            skipped.append(coin.id)
    return results, skipped
