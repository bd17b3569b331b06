"""CoinGecko REST API client for market listings and price history."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote, urlencode

from pydantic import TypeAdapter

from coinpulse.clients.broker import RequestBroker
from coinpulse.config import Settings
from coinpulse_core.models import MarketCoin, PriceSeries

logger = logging.getLogger(__name__)

KEY_PREFIX_MARKETS = "markets:"  # markets:{query}
KEY_PREFIX_CHART = "chart:"  # chart:{coin_id}:{query}

_markets_adapter = TypeAdapter(list[MarketCoin])


def _parse_markets(payload: Any) -> list[MarketCoin]:
    return _markets_adapter.validate_python(payload)


def _chart_parser(coin_id: str):
    def parse(payload: Any) -> PriceSeries:
        if not isinstance(payload, dict) or not isinstance(payload.get("prices"), list):
            raise ValueError("market_chart payload has no 'prices' list")
        pairs = []
        for item in payload["prices"]:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise ValueError(f"malformed price sample: {item!r}")
            pairs.append((float(item[0]), float(item[1])))
        return PriceSeries.from_pairs(coin_id, pairs)

    return parse


class CoinGeckoClient:
    """Typed access to the two CoinGecko endpoints the analysis needs.

    Every call goes through the shared RequestBroker, so results are cached
    and the provider's rate envelope is respected.
    """

    def __init__(self, broker: RequestBroker, settings: Settings | None = None):
        self.broker = broker
        self.settings = settings or broker.settings
        self.base_url = self.settings.coingecko_base_url.rstrip("/")

    async def close(self) -> None:
        await self.broker.close()

    async def get_markets(
        self,
        per_page: int | None = None,
        page: int = 1,
        ids: list[str] | None = None,
    ) -> list[MarketCoin]:
        """
        Fetch the markets listing ordered by market cap.

        Args:
            per_page: Number of coins (defaults to settings.markets_per_page)
            page: Page number (1-based)
            ids: Restrict the listing to these coin ids

        Returns:
            List of MarketCoin rows
        """
        params: dict[str, Any] = {
            "vs_currency": self.settings.vs_currency,
            "order": "market_cap_desc",
            "per_page": per_page or self.settings.markets_per_page,
            "page": page,
            "sparkline": "false",
        }
        if ids:
            params["ids"] = ",".join(ids)

        query = urlencode(params)
        return await self.broker.fetch(
            f"{self.base_url}/coins/markets?{query}",
            cache_key=f"{KEY_PREFIX_MARKETS}{query}",
            initial_delay=self.settings.initial_retry_delay,
            validate=_parse_markets,
        )

    async def get_market_chart(
        self,
        coin_id: str,
        days: int | None = None,
        interval: str = "daily",
    ) -> PriceSeries:
        """
        Fetch the trailing price history for one coin.

        Args:
            coin_id: CoinGecko coin id (e.g., "bitcoin")
            days: Trailing window in days (defaults to settings.chart_days)
            interval: Sample interval

        Returns:
            PriceSeries ascending by time
        """
        params = {
            "vs_currency": self.settings.vs_currency,
            "days": days or self.settings.chart_days,
            "interval": interval,
        }
        query = urlencode(params)
        return await self.broker.fetch(
            f"{self.base_url}/coins/{quote(coin_id, safe='')}/market_chart?{query}",
            cache_key=f"{KEY_PREFIX_CHART}{coin_id}:{query}",
            initial_delay=self.settings.secondary_retry_delay,
            validate=_chart_parser(coin_id),
        )

    def invalidate(self) -> int:
        """Expire every cached listing and chart."""
        count = self.broker.invalidate(KEY_PREFIX_MARKETS)
        count += self.broker.invalidate(KEY_PREFIX_CHART)
        logger.info(f"Invalidated {count} cached responses")
        return count
