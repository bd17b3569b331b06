"""Typed failures surfaced by the request broker."""

from __future__ import annotations


class BrokerError(Exception):
    """Base class for every failure a broker fetch can resolve with."""

    def __init__(self, message: str, url: str = "", attempts: int = 0):
        super().__init__(message)
        self.url = url
        self.attempts = attempts


class RateLimitExceeded(BrokerError):
    """Upstream kept answering 429 until the retry budget ran out."""


class TransportError(BrokerError):
    """The upstream could not be reached at all (connect/timeout/protocol)."""


class InvalidResponseShape(BrokerError):
    """Upstream answered, but the payload does not match the expected schema."""


class UpstreamStatusError(BrokerError):
    """Upstream answered with a non-429 HTTP error status."""

    def __init__(self, message: str, url: str = "", attempts: int = 0, status_code: int = 0):
        super().__init__(message, url=url, attempts=attempts)
        self.status_code = status_code
