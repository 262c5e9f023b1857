"""Header-driven request pacing."""

from prcclient.ratelimit.headers import RateHeaders, clamp_delay_ms, parse_rate_headers
from prcclient.ratelimit.pacer import PacingState, RoutePacer
from prcclient.ratelimit.registry import PacerRegistry, normalize_route

__all__ = [
    "RateHeaders",
    "parse_rate_headers",
    "clamp_delay_ms",
    "PacingState",
    "RoutePacer",
    "PacerRegistry",
    "normalize_route",
]
