"""Market analysis service.

Fetches the markets listing and per-coin price history through the
CoinGecko client and runs the pure analyzer over them. One pass analyzes
the top N listed coins. Coins with no listed price, too little history
or a failed chart request are left out of the report instead of failing
the pass.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable

from pydantic import BaseModel, Field

from coinpulse.clients import BrokerError, CoinGeckoClient
from coinpulse.config import Settings
from coinpulse.services.catalog import FALLBACK_MEME_COINS, MEME_COIN_IDS
from coinpulse_core.analyzer import analyze_markets
from coinpulse_core.models import AnalysisResult, MarketCoin, PriceSeries, Signal

logger = logging.getLogger(__name__)


class AnalysisReport(BaseModel):
    """Results of one analysis pass."""

    results: list[AnalysisResult] = Field(default_factory=list)
    requested: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)  # no price or too little history
    failed: list[str] = Field(default_factory=list)  # chart fetch failed
    computed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def by_signal(self, signal: Signal) -> list[AnalysisResult]:
        return [r for r in self.results if r.signal == signal]

    @property
    def signal_counts(self) -> dict[str, int]:
        return {s.value: len(self.by_signal(s)) for s in Signal}


class MemeCoinListing(BaseModel):
    """Meme coin listing, flagged when it came from the static fallback."""

    coins: list[MarketCoin]
    using_fallback: bool = False


class MarketAnalysisService:
    """Runs analysis passes and keeps the latest report.

    ``get_report`` reuses the latest report until it is older than
    ``settings.analysis_max_age`` seconds, then runs a new pass. Reruns
    inside the cache TTL are served from cached upstream data.
    """

    def __init__(
        self,
        client: CoinGeckoClient,
        settings: Settings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.settings = settings or client.settings
        self._clock = clock
        self.latest_report: AnalysisReport | None = None
        self._latest_at: float | None = None

    async def get_markets(self, limit: int | None = None) -> list[MarketCoin]:
        """Get the top coins by market cap."""
        return await self.client.get_markets(per_page=limit)

    async def run_analysis(self, top_n: int | None = None) -> AnalysisReport:
        """Analyze the top ``top_n`` coins of the markets listing.

        Raises:
            BrokerError: If the markets listing itself cannot be fetched
        """
        top_n = top_n or self.settings.analysis_top_n
        markets = await self.client.get_markets()
        coins = markets[:top_n]

        report = AnalysisReport(requested=[c.id for c in coins])
        pairs: list[tuple[MarketCoin, PriceSeries]] = []

        for coin in coins:
            if coin.current_price is None:
                # Rejected by the analyzer before history is looked at
                pairs.append((coin, PriceSeries(coin_id=coin.id)))
                continue
            logger.debug(f"Analyzing {coin.name}...")
            try:
                series = await self.client.get_market_chart(coin.id)
            except BrokerError as e:
                logger.error(f"Error analyzing {coin.name}: {e}")
                report.failed.append(coin.id)
                continue
            pairs.append((coin, series))

        now = datetime.now(timezone.utc)
        report.results, report.skipped = analyze_markets(
            pairs, self.settings.min_history, now=now
        )
        report.computed_at = now
        self.latest_report = report
        self._latest_at = self._clock()

        counts = report.signal_counts
        logger.info(
            f"Analysis complete: {len(report.results)}/{len(coins)} coins "
            f"(long={counts['long']}, short={counts['short']}, hold={counts['hold']})"
        )
        return report

    @property
    def report_age(self) -> float | None:
        """Seconds since the latest pass finished, or None before the first."""
        if self._latest_at is None:
            return None
        return self._clock() - self._latest_at

    async def get_report(self) -> AnalysisReport:
        """Return the latest report, running a new pass if it is missing or too old."""
        age = self.report_age
        if age is None or age >= self.settings.analysis_max_age:
            return await self.run_analysis()
        return self.latest_report

    async def refresh(self) -> AnalysisReport:
        """Expire cached upstream data and run a new pass."""
        self.client.invalidate()
        return await self.run_analysis()

    async def get_meme_coins(self) -> MemeCoinListing:
        """Get the meme coin listing, or the static fallback if unavailable."""
        try:
            coins = await self.client.get_markets(ids=list(MEME_COIN_IDS))
        except BrokerError as e:
            logger.warning(f"Meme coin fetch failed, using fallback data: {e}")
            return MemeCoinListing(coins=list(FALLBACK_MEME_COINS), using_fallback=True)
        return MemeCoinListing(coins=coins)
