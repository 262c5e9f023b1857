"""Shared fixtures for the client tests."""

from typing import Any

import pytest
import pytest_asyncio

from helpers import ShiftedClock
from prcclient.core.config import PacingConfig
from prcclient.ratelimit.registry import PacerRegistry
from prcclient.services.orchestrator import RequestOrchestrator
from prcclient.services.response_cache import ResponseCache
from prcclient.services.retry import RetryPolicy


@pytest.fixture
def clock() -> ShiftedClock:
    return ShiftedClock()


@pytest.fixture
def fast_config() -> PacingConfig:
    """Pacing fast enough that tests never wait on spacing."""
    return PacingConfig(requests_per_minute=60_000, max_concurrency=5, min_interval_ms=0)


@pytest_asyncio.fixture
async def registry(fast_config, clock):
    reg = PacerRegistry(fast_config, clock=clock)
    yield reg
    await reg.aclose()


@pytest.fixture
def make_orchestrator(registry, clock):
    def _make(transport, retries: int = 3, **policy: Any) -> RequestOrchestrator:
        policy.setdefault("jitter_ms", 0)
        return RequestOrchestrator(
            registry,
            ResponseCache(),
            transport,
            retry_policy=RetryPolicy(max_retries=retries, **policy),
            sleep=clock.sleep,
        )
    return _make
