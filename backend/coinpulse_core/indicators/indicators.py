"""Technical indicators for signal analysis.

All functions are pure and operate on plain price sequences (oldest first).
They return a single value for the most recent bar, which is all the
signal classifier needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

# Neutral RSI reported when there is not enough history
RSI_NEUTRAL = 50.0


def _as_array(prices: Sequence[float]) -> np.ndarray:
    return np.asarray(prices, dtype=np.float64)


def sma(prices: Sequence[float], period: int) -> float:
    """Simple moving average of the last ``period`` prices.

    With fewer than ``period`` prices the most recent price is returned
    (a single-point average), so callers always get a usable number.
    An empty series yields 0.0.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(prices) == 0:
        return 0.0
    if len(prices) < period:
        return float(prices[-1])

    arr = _as_array(prices)
    return float(np.mean(arr[-period:]))


def rsi(prices: Sequence[float], period: int = 14) -> float:
    """Relative Strength Index over the trailing ``period`` changes.

    Gains and losses are averaged with a simple mean (not Wilder smoothing).
    Returns 100 when there are no losses in the window and the neutral
    value 50 when fewer than ``period + 1`` prices are available.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(prices) < period + 1:
        return RSI_NEUTRAL

    changes = np.diff(_as_array(prices))[-period:]
    gains = np.clip(changes, 0.0, None)
    losses = np.clip(-changes, 0.0, None)

    avg_gain = float(np.sum(gains)) / period
    avg_loss = float(np.sum(losses)) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values for the latest bar of a series."""

    sma20: float
    sma50: float
    rsi: float


def compute_indicators(
    prices: Sequence[float],
    fast_period: int = 20,
    slow_period: int = 50,
    rsi_period: int = 14,
) -> IndicatorSnapshot:
    """Compute the fast/slow SMA pair and RSI used by the classifier."""
    return IndicatorSnapshot(
        sma20=sma(prices, fast_period),
        sma50=sma(prices, slow_period),
        rsi=rsi(prices, rsi_period),
    )
