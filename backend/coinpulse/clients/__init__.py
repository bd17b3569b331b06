"""Upstream API clients."""

from coinpulse.clients.backoff import BackoffPolicy, FailureKind, parse_retry_after
from coinpulse.clients.broker import (
    QueuedRequest,
    RequestBroker,
    RequestState,
    UpstreamQuotaState,
)
from coinpulse.clients.coingecko import CoinGeckoClient
from coinpulse.clients.errors import (
    BrokerError,
    InvalidResponseShape,
    RateLimitExceeded,
    TransportError,
    UpstreamStatusError,
)

__all__ = [
    "BackoffPolicy",
    "FailureKind",
    "parse_retry_after",
    "QueuedRequest",
    "RequestBroker",
    "RequestState",
    "UpstreamQuotaState",
    "CoinGeckoClient",
    "BrokerError",
    "InvalidResponseShape",
    "RateLimitExceeded",
    "TransportError",
    "UpstreamStatusError",
]
