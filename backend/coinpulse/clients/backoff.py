"""Retry delay and retry eligibility policy."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from enum import Enum

# Keeps 2**attempt bounded for very large attempt numbers
_MAX_EXPONENT = 32


class FailureKind(str, Enum):
    """Failure classes with different retry eligibility."""

    RATE_LIMITED = "rate_limited"  # HTTP 429
    TRANSPORT = "transport"  # connection could not be established
    SERVER = "server"  # HTTP 5xx


@dataclass(frozen=True)
class BackoffPolicy:
    """Exponential backoff with a cap and support for server wait hints.

    ``attempt`` is the zero-based index of the retry about to be made.
    """

    initial_delay: float = 2.0
    max_delay: float = 30.0
    # Transport failures get at most this many retries regardless of budget
    max_transport_retries: int = 1

    def next_delay(self, attempt: int, server_hint: float | None = None) -> float:
        """Seconds to wait before retry number ``attempt``."""
        if server_hint is not None:
            return min(max(server_hint, 0.0), self.max_delay)
        exponent = min(max(attempt, 0), _MAX_EXPONENT)
        return min(self.initial_delay * (2 ** exponent), self.max_delay)

    def should_retry(self, kind: FailureKind, attempt: int, retries: int) -> bool:
        """Whether retry number ``attempt`` is allowed for this failure kind."""
        budget = retries
        if kind is FailureKind.TRANSPORT:
            budget = min(retries, self.max_transport_retries)
        return attempt < budget

    def with_initial_delay(self, initial_delay: float) -> "BackoffPolicy":
        return BackoffPolicy(
            initial_delay=initial_delay,
            max_delay=self.max_delay,
            max_transport_retries=self.max_transport_retries,
        )


def parse_retry_after(value: str | None, now: datetime | None = None) -> float | None:
    """Parse a Retry-After header into seconds.

    Accepts both delta-seconds and HTTP-date forms. Returns None when the
    header is missing or unparseable.
    """
    if not value:
        return None
    value = value.strip()
    try:
        seconds = float(value)
    except ValueError:
        pass
    else:
        return seconds if math.isfinite(seconds) else None

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max((when - now).total_seconds(), 0.0)
