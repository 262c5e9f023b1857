"""Rate-limit header parsing.

Reads the quota signals the API attaches to every response. Missing or
non-numeric values come back as ``None`` instead of raising.
"""

import math
from dataclasses import dataclass
from typing import Mapping, Optional

import httpx


REMAINING_HEADER = "x-ratelimit-remaining"
RESET_HEADER = "x-ratelimit-reset"
RETRY_AFTER_HEADER = "retry-after"
ETAG_HEADER = "etag"
IF_NONE_MATCH_HEADER = "if-none-match"

# Largest delay a timer is ever armed with (signed 32-bit milliseconds)
MAX_DELAY_MS = 2**31 - 1


@dataclass(frozen=True)
class RateHeaders:
    """Quota signals extracted from one response."""

    remaining: Optional[float] = None
    reset_seconds: Optional[float] = None
    retry_after_seconds: Optional[float] = None

    @property
    def retry_after_ms(self) -> Optional[float]:
        if self.retry_after_seconds is None:
            return None
        return self.retry_after_seconds * 1000


def _number(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        parsed = float(value.strip())
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def parse_rate_headers(headers: Mapping[str, str]) -> RateHeaders:
    """Extract remaining quota, reset time and retry hint from headers.

    Lookup is case-insensitive regardless of the mapping type passed in.
    """
    if not isinstance(headers, httpx.Headers):
        headers = httpx.Headers(headers)
    return RateHeaders(
        remaining=_number(headers.get(REMAINING_HEADER)),
        reset_seconds=_number(headers.get(RESET_HEADER)),
        retry_after_seconds=_number(headers.get(RETRY_AFTER_HEADER)),
    )


def clamp_delay_ms(ms: Optional[float]) -> float:
    """Clamp a delay to ``[0, MAX_DELAY_MS]``; junk input becomes 0."""
    if ms is None or not isinstance(ms, (int, float)) or not math.isfinite(ms) or ms <= 0:
        return 0.0
    return float(min(MAX_DELAY_MS, math.floor(ms)))
