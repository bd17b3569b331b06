"""Signal and analysis result models."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Signal(str, Enum):
    """Directional trade signal."""

    LONG = "long"
    SHORT = "short"
    HOLD = "hold"


class Trend(str, Enum):
    """Trend classification."""

    STRONG_UP = "strong_up"
    UP = "up"
    NEUTRAL = "neutral"
    DOWN = "down"
    STRONG_DOWN = "strong_down"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AnalysisResult(BaseModel):
    """Outcome of one analysis pass for one coin.

    Immutable; the next pass produces a new result instead of updating this one.
    """

    model_config = ConfigDict(frozen=True)

    coin_id: str
    name: str = ""
    symbol: str = ""
    price: float
    price_change_24h: float
    sma20: float
    sma50: float
    rsi: float
    signal: Signal
    signal_reason: str
    trend: Trend
    volume: float | None = None
    market_cap: float | None = None
    computed_at: datetime = Field(default_factory=_utcnow)
