"""Tests for the CoinGecko client."""

from urllib.parse import parse_qs, urlsplit

import pytest

from coinpulse.clients import CoinGeckoClient, InvalidResponseShape
from coinpulse_core.models import MarketCoin, PriceSeries


@pytest.fixture
def gecko(make_broker):
    return CoinGeckoClient(make_broker())


def last_query(upstream) -> tuple[str, dict]:
    url = urlsplit(upstream.calls[-1][1])
    return url.path, {k: v[0] for k, v in parse_qs(url.query).items()}


class TestGetMarkets:
    """Tests for the markets listing endpoint."""

    @pytest.mark.asyncio
    async def test_parses_rows(self, gecko, upstream, markets_payload):
        upstream.then(upstream.json(markets_payload))

        coins = await gecko.get_markets()

        assert [c.id for c in coins] == ["bitcoin", "ethereum", "tether"]
        assert all(isinstance(c, MarketCoin) for c in coins)
        assert coins[0].current_price == 110.0
        assert coins[2].price_change_percentage_24h is None
        assert coins[2].change_24h == 0.0

    @pytest.mark.asyncio
    async def test_query_parameters(self, gecko, upstream, markets_payload):
        upstream.then(upstream.json(markets_payload))

        await gecko.get_markets(per_page=3, page=2)

        path, params = last_query(upstream)
        assert path == "/api/v3/coins/markets"
        assert params == {
            "vs_currency": "usd",
            "order": "market_cap_desc",
            "per_page": "3",
            "page": "2",
            "sparkline": "false",
        }

    @pytest.mark.asyncio
    async def test_ids_filter(self, gecko, upstream, markets_payload):
        upstream.then(upstream.json(markets_payload))

        await gecko.get_markets(ids=["dogecoin", "pepe"])

        _, params = last_query(upstream)
        assert params["ids"] == "dogecoin,pepe"

    @pytest.mark.asyncio
    async def test_cached_by_query(self, gecko, upstream, markets_payload):
        upstream.always(upstream.json(markets_payload))

        await gecko.get_markets()
        await gecko.get_markets()
        await gecko.get_markets(per_page=5)

        assert upstream.call_count == 2

    @pytest.mark.asyncio
    async def test_null_price_row_kept(self, gecko, upstream, markets_payload):
        markets_payload[1]["current_price"] = None
        upstream.then(upstream.json(markets_payload))

        coins = await gecko.get_markets()

        assert len(coins) == 3
        assert coins[1].id == "ethereum"
        assert coins[1].current_price is None

    @pytest.mark.asyncio
    async def test_rejects_non_list_payload(self, gecko, upstream):
        upstream.then(upstream.json({"status": {"error_code": 429}}))

        with pytest.raises(InvalidResponseShape):
            await gecko.get_markets()

    @pytest.mark.asyncio
    async def test_ignores_unknown_fields(self, gecko, upstream, markets_payload):
        markets_payload[0]["roi"] = None
        markets_payload[0]["ath"] = 69_000
        upstream.then(upstream.json(markets_payload))

        coins = await gecko.get_markets()

        assert coins[0].id == "bitcoin"


class TestGetMarketChart:
    """Tests for the market_chart endpoint."""

    @pytest.mark.asyncio
    async def test_parses_price_series(self, gecko, upstream, chart_factory):
        upstream.then(upstream.json(chart_factory([1.0, 2.0, 3.0])))

        series = await gecko.get_market_chart("bitcoin")

        assert isinstance(series, PriceSeries)
        assert series.coin_id == "bitcoin"
        assert series.prices == [1.0, 2.0, 3.0]

    @pytest.mark.asyncio
    async def test_query_parameters(self, gecko, upstream, chart_factory):
        upstream.then(upstream.json(chart_factory([1.0])))

        await gecko.get_market_chart("bitcoin", days=7)

        path, params = last_query(upstream)
        assert path == "/api/v3/coins/bitcoin/market_chart"
        assert params == {"vs_currency": "usd", "days": "7", "interval": "daily"}

    @pytest.mark.asyncio
    async def test_default_days(self, gecko, upstream, chart_factory, settings):
        upstream.then(upstream.json(chart_factory([1.0])))

        await gecko.get_market_chart("bitcoin")

        _, params = last_query(upstream)
        assert params["days"] == str(settings.chart_days)

    @pytest.mark.asyncio
    async def test_coin_id_is_escaped(self, gecko, upstream, chart_factory):
        upstream.then(upstream.json(chart_factory([1.0])))

        await gecko.get_market_chart("weird/id")

        path, _ = last_query(upstream)
        assert path == "/api/v3/coins/weird%2Fid/market_chart"

    @pytest.mark.asyncio
    async def test_missing_prices(self, gecko, upstream):
        upstream.then(upstream.json({"market_caps": []}))

        with pytest.raises(InvalidResponseShape):
            await gecko.get_market_chart("bitcoin")

    @pytest.mark.asyncio
    async def test_malformed_sample(self, gecko, upstream):
        upstream.then(upstream.json({"prices": [[1_700_000_000_000, 1.0], [5]]}))

        with pytest.raises(InvalidResponseShape):
            await gecko.get_market_chart("bitcoin")

    @pytest.mark.asyncio
    async def test_chart_uses_secondary_delay(self, make_broker, upstream, clock, chart_factory):
        gecko = CoinGeckoClient(make_broker(min_request_spacing=0.0))
        upstream.then(upstream.status(429), upstream.json(chart_factory([1.0])))

        await gecko.get_market_chart("bitcoin")

        assert clock.sleeps == [1.5]


class TestInvalidate:
    """Tests for cache invalidation."""

    @pytest.mark.asyncio
    async def test_invalidate_forces_refetch(
        self, gecko, upstream, markets_payload, chart_factory
    ):
        upstream.then(
            upstream.json(markets_payload),
            upstream.json(chart_factory([1.0, 2.0])),
            upstream.json(markets_payload),
            upstream.json(chart_factory([3.0, 4.0])),
        )
        await gecko.get_markets()
        await gecko.get_market_chart("bitcoin")

        assert gecko.invalidate() == 2

        await gecko.get_markets()
        series = await gecko.get_market_chart("bitcoin")
        assert series.prices == [3.0, 4.0]
        assert upstream.call_count == 4
