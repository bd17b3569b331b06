"""Ordered rule tables for signal and trend classification.

Each table is a tuple of rules evaluated top to bottom; the first rule
whose predicate matches decides the outcome. The last rule of each table
always matches, so classification is total.

"Above" and "below" are strict comparisons: a price equal to a moving
average is neither above nor below it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from coinpulse_core.models.analysis import Signal, Trend

OVERBOUGHT = 70.0
OVERSOLD = 30.0
STRONG_MOVE_PCT = 5.0

T = TypeVar("T")


@dataclass(frozen=True)
class MarketSnapshot:
    """Inputs shared by both classifiers."""

    price: float
    sma20: float
    sma50: float
    rsi: float
    change_24h: float

    @property
    def above_sma20(self) -> bool:
        return self.price > self.sma20

    @property
    def above_sma50(self) -> bool:
        return self.price > self.sma50

    @property
    def below_sma20(self) -> bool:
        return self.price < self.sma20

    @property
    def below_sma50(self) -> bool:
        return self.price < self.sma50

    @property
    def above_both(self) -> bool:
        return self.above_sma20 and self.above_sma50

    @property
    def below_both(self) -> bool:
        return self.below_sma20 and self.below_sma50

    @property
    def below_either(self) -> bool:
        return self.below_sma20 or self.below_sma50

    @property
    def fast_above_slow(self) -> bool:
        return self.sma20 > self.sma50

    @property
    def overbought(self) -> bool:
        return self.rsi > OVERBOUGHT

    @property
    def oversold(self) -> bool:
        return self.rsi < OVERSOLD


@dataclass(frozen=True)
class Rule(Generic[T]):
    """One row of a decision table."""

    name: str
    predicate: Callable[[MarketSnapshot], bool]
    outcome: T
    reason: str = ""

    def matches(self, snapshot: MarketSnapshot) -> bool:
        return self.predicate(snapshot)


SIGNAL_RULES: tuple[Rule[Signal], ...] = (
    Rule(
        name="oversold_bounce",
        predicate=lambda s: s.oversold and s.above_both and s.fast_above_slow,
        outcome=Signal.LONG,
        reason="oversold bounce in uptrend",
    ),
    Rule(
        name="uptrend_momentum",
        predicate=lambda s: s.above_both and s.fast_above_slow and not s.overbought,
        outcome=Signal.LONG,
        reason="strong uptrend momentum",
    ),
    Rule(
        name="overbought_downtrend",
        predicate=lambda s: s.overbought and s.below_either,
        outcome=Signal.SHORT,
        reason="overbought in downtrend",
    ),
    Rule(
        name="strong_downtrend",
        predicate=lambda s: s.below_both and not s.fast_above_slow and not s.oversold,
        outcome=Signal.SHORT,
        reason="strong downtrend",
    ),
    Rule(
        name="no_signal",
        predicate=lambda s: True,
        outcome=Signal.HOLD,
        reason="no clear signal",
    ),
)

TREND_RULES: tuple[Rule[Trend], ...] = (
    Rule(
        name="strong_up",
        predicate=lambda s: s.above_both
        and s.fast_above_slow
        and s.change_24h > STRONG_MOVE_PCT,
        outcome=Trend.STRONG_UP,
    ),
    Rule(
        name="up",
        predicate=lambda s: s.above_sma20 and s.fast_above_slow,
        outcome=Trend.UP,
    ),
    Rule(
        name="strong_down",
        predicate=lambda s: s.below_both and s.change_24h < -STRONG_MOVE_PCT,
        outcome=Trend.STRONG_DOWN,
    ),
    Rule(
        name="down",
        predicate=lambda s: s.below_either,
        outcome=Trend.DOWN,
    ),
    Rule(
        name="neutral",
        predicate=lambda s: True,
        outcome=Trend.NEUTRAL,
    ),
)


def first_match(rules: tuple[Rule[T], ...], snapshot: MarketSnapshot) -> Rule[T]:
    """Return the first rule in ``rules`` that matches ``snapshot``."""
    for rule in rules:
        if rule.matches(snapshot):
            return rule
    raise LookupError("rule table has no catch-all rule")


def classify_signal(
    price: float,
    sma20: float,
    sma50: float,
    rsi: float,
    change_24h: float,
) -> tuple[Signal, str]:
    """Classify a trade signal.

    Returns:
        (signal, reason) from the first matching row of SIGNAL_RULES.
    """
    snapshot = MarketSnapshot(price, sma20, sma50, rsi, change_24h)
    rule = first_match(SIGNAL_RULES, snapshot)
    return rule.outcome, rule.reason


def classify_trend(
    price: float,
    sma20: float,
    sma50: float,
    rsi: float,
    change_24h: float,
) -> Trend:
    """Classify the trend from the same inputs as classify_signal."""
    snapshot = MarketSnapshot(price, sma20, sma50, rsi, change_24h)
    return first_match(TREND_RULES, snapshot).outcome
