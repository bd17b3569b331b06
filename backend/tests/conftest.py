"""Shared fixtures: fake clock, scripted upstream, broker factory."""

import asyncio
from collections import deque

import httpx
import pytest

from coinpulse.clients import RequestBroker
from coinpulse.config import Settings


class FakeClock:
    """Monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(seconds, 0.0)
        await asyncio.sleep(0)

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """httpx.MockTransport handler that replays scripted responses.

    Each script entry is a callable taking the request. When the script is
    exhausted the ``default`` entry is used. Every call is recorded as
    (clock time, url).
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.script: deque = deque()
        self.default = None
        self.calls: list[tuple[float, str]] = []
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((self.clock(), str(request.url)))
        self.requests.append(request)
        entry = self.script.popleft() if self.script else self.default
        if entry is None:
            raise AssertionError(f"unexpected upstream call: {request.url}")
        return entry(request)

    def then(self, *entries) -> "FakeUpstream":
        self.script.extend(entries)
        return self

    def always(self, entry) -> "FakeUpstream":
        self.default = entry
        return self

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @staticmethod
    def json(payload, status: int = 200):
        return lambda request: httpx.Response(status, json=payload)

    @staticmethod
    def status(code: int, retry_after: str | None = None):
        headers = {"Retry-After": retry_after} if retry_after is not None else {}
        return lambda request: httpx.Response(code, headers=headers)

    @staticmethod
    def text(body: str, status: int = 200):
        return lambda request: httpx.Response(status, text=body)

    @staticmethod
    def connect_error():
        def raise_error(request):
            raise httpx.ConnectError("Failed to fetch", request=request)

        return raise_error


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream(clock):
    return FakeUpstream(clock)


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def make_broker(clock, upstream, settings):
    """Factory for brokers wired to the fake clock and scripted upstream."""

    def factory(**overrides) -> RequestBroker:
        broker_settings = settings.model_copy(update=overrides) if overrides else settings
        client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
        return RequestBroker(
            settings=broker_settings,
            client=client,
            clock=clock,
            sleep=clock.sleep,
        )

    return factory


MARKETS_PAYLOAD = [
    {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "image": "https://example.com/btc.png",
        "current_price": 110.0,
        "market_cap": 2_000_000_000,
        "market_cap_rank": 1,
        "total_volume": 50_000_000,
        "price_change_percentage_24h": 6.5,
    },
    {
        "id": "ethereum",
        "symbol": "eth",
        "name": "Ethereum",
        "image": "https://example.com/eth.png",
        "current_price": 80.0,
        "market_cap": 900_000_000,
        "market_cap_rank": 2,
        "total_volume": 20_000_000,
        "price_change_percentage_24h": -7.0,
    },
    {
        "id": "tether",
        "symbol": "usdt",
        "name": "Tether",
        "image": "https://example.com/usdt.png",
        "current_price": 1.0,
        "market_cap": 100_000_000,
        "market_cap_rank": 3,
        "total_volume": 90_000_000,
        "price_change_percentage_24h": None,
    },
]


def chart_payload(prices: list[float], start_ms: int = 1_700_000_000_000) -> dict:
    day = 86_400_000
    return {
        "prices": [[start_ms + i * day, p] for i, p in enumerate(prices)],
        "market_caps": [],
        "total_volumes": [],
    }


@pytest.fixture
def markets_payload():
    return [dict(row) for row in MARKETS_PAYLOAD]


@pytest.fixture
def chart_factory():
    return chart_payload
