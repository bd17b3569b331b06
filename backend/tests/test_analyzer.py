"""Tests for per-coin analysis."""

import logging
from datetime import datetime, timezone

import pytest

from coinpulse_core.analyzer import (
    InsufficientHistory,
    MissingPrice,
    analyze_coin,
    analyze_markets,
)
from coinpulse_core.models import MarketCoin, PriceSeries, Signal, Trend


def make_coin(coin_id="bitcoin", price=110.0, change=2.0) -> MarketCoin:
    return MarketCoin(
        id=coin_id,
        symbol=coin_id[:3],
        name=coin_id.title(),
        current_price=price,
        price_change_percentage_24h=change,
        market_cap=1_000_000,
        total_volume=50_000,
    )


def make_series(prices, coin_id="bitcoin") -> PriceSeries:
    start = 1_700_000_000_000
    return PriceSeries.from_pairs(
        coin_id, [(start + i * 86_400_000, p) for i, p in enumerate(prices)]
    )


class TestAnalyzeCoin:
    """Tests for analyze_coin."""

    def test_overbought_uptrend_holds(self):
        """Rising history with live price above both SMAs."""
        prices = [100.0 + i for i in range(30)]  # 100..129, no losses
        coin = make_coin(price=140.0, change=6.0)

        result = analyze_coin(coin, make_series(prices))

        assert result.coin_id == "bitcoin"
        assert result.symbol == "BIT"
        assert result.sma20 == pytest.approx(119.5)
        assert result.sma50 == 129.0  # short history -> latest price
        assert result.rsi == 100
        # RSI 100 is overbought, so neither long rule fires
        assert result.signal == Signal.HOLD
        # sma20 < sma50 here, so no uptrend classification
        assert result.trend == Trend.NEUTRAL

    def test_oversold_downtrend_holds(self):
        prices = [200.0 - i for i in range(60)]  # 200..141
        coin = make_coin(price=130.0, change=-6.0)

        result = analyze_coin(coin, make_series(prices))

        assert result.sma20 < result.sma50
        assert result.rsi == pytest.approx(0.0)
        # Oversold blocks the downtrend short
        assert result.signal == Signal.HOLD
        assert result.trend == Trend.STRONG_DOWN

    def test_result_carries_listing_fields(self):
        prices = [100.0] * 25
        coin = make_coin(price=100.0, change=0.0)
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)

        result = analyze_coin(coin, make_series(prices), now=now)

        assert result.price == 100.0
        assert result.price_change_24h == 0.0
        assert result.volume == 50_000
        assert result.market_cap == 1_000_000
        assert result.computed_at == now
        assert result.signal == Signal.HOLD
        assert result.trend == Trend.NEUTRAL

    def test_missing_change_defaults_to_zero(self):
        coin = MarketCoin(id="x", symbol="x", name="X", current_price=1.0)
        result = analyze_coin(coin, make_series([1.0] * 20, "x"))
        assert result.price_change_24h == 0.0

    def test_insufficient_history_raises(self):
        with pytest.raises(InsufficientHistory) as exc_info:
            analyze_coin(make_coin(), make_series([100.0] * 19))

        assert exc_info.value.available == 19
        assert exc_info.value.required == 20

    def test_missing_price_raises(self):
        coin = MarketCoin(id="ghost", symbol="gst", name="Ghost", current_price=None)
        with pytest.raises(MissingPrice):
            analyze_coin(coin, make_series([1.0] * 30, "ghost"))

    def test_custom_min_history(self):
        series = make_series([100.0] * 30)
        with pytest.raises(InsufficientHistory):
            analyze_coin(make_coin(), series, min_history=50)

    def test_result_is_immutable(self):
        result = analyze_coin(make_coin(), make_series([100.0] * 20))
        with pytest.raises(Exception):
            result.signal = Signal.LONG


class TestAnalyzeMarkets:
    """Tests for batch analysis."""

    def test_skips_short_histories(self, caplog):
        pairs = [
            (make_coin("bitcoin"), make_series([100.0] * 30, "bitcoin")),
            (make_coin("ethereum"), make_series([100.0] * 5, "ethereum")),
            (make_coin("solana"), make_series([100.0] * 20, "solana")),
        ]

        with caplog.at_level(logging.WARNING, logger="coinpulse_core.analyzer"):
            results, skipped = analyze_markets(pairs)

        assert [r.coin_id for r in results] == ["bitcoin", "solana"]
        assert skipped == ["ethereum"]
        assert "ethereum" in caplog.text.lower()

    def test_shared_timestamp(self):
        pairs = [
            (make_coin("bitcoin"), make_series([100.0] * 20, "bitcoin")),
            (make_coin("solana"), make_series([100.0] * 20, "solana")),
        ]
        results, _ = analyze_markets(pairs)
        assert results[0].computed_at == results[1].computed_at

    def test_explicit_timestamp(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        pairs = [(make_coin("bitcoin"), make_series([100.0] * 20, "bitcoin"))]
        results, _ = analyze_markets(pairs, now=now)
        assert results[0].computed_at == now

    def test_skips_missing_price(self):
        priceless = MarketCoin(id="ghost", symbol="gst", name="Ghost", current_price=None)
        pairs = [
            (priceless, make_series([1.0] * 30, "ghost")),
            (make_coin("solana"), make_series([100.0] * 20, "solana")),
        ]

        results, skipped = analyze_markets(pairs)

        assert [r.coin_id for r in results] == ["solana"]
        assert skipped == ["ghost"]

    def test_empty_input(self):
        assert analyze_markets([]) == ([], [])


class TestPriceSeries:
    """Tests for the PriceSeries model."""

    def test_from_pairs(self):
        series = make_series([1.0, 2.0, 3.0])
        assert len(series) == 3
        assert series.prices == [1.0, 2.0, 3.0]
        assert series.latest.price == 3.0
        assert series.points[0].timestamp.tzinfo is not None

    def test_rejects_descending_timestamps(self):
        with pytest.raises(ValueError):
            PriceSeries.from_pairs("bitcoin", [(2_000, 1.0), (1_000, 2.0)])

    def test_empty_series(self):
        series = PriceSeries(coin_id="bitcoin")
        assert len(series) == 0
        assert series.latest is None
