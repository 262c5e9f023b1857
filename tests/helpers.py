"""Test doubles shared across the test modules."""

import asyncio
import time
from typing import Any, List, Optional

import httpx

from prcclient.core.http_client import TransportResponse

API = "https://api.policeroleplay.community"


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class ShiftedClock:
    """Monotonic milliseconds plus an offset moved by :meth:`sleep`.

    Retry sleeps complete instantly while the pacer still sees the time pass.
    """

    def __init__(self) -> None:
        self.offset_ms = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return time.monotonic() * 1000 + self.offset_ms

    def advance(self, ms: float) -> None:
        self.offset_ms += ms

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.advance(seconds * 1000)
        await asyncio.sleep(0)


class FakeTransport:
    """Scripted transport; the last response repeats once the script runs out."""

    def __init__(self, *responses: Any, clock: Optional[ShiftedClock] = None):
        self.responses = list(responses)
        self.calls: List[dict] = []
        self.clock = clock

    async def __call__(self, url, method, headers, body):
        self.calls.append({
            "url": url,
            "method": method,
            "headers": dict(httpx.Headers(headers)),
            "body": body,
            "at": self.clock() if self.clock else None,
        })
        result = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(result, BaseException):
            raise result
        return result


def response(status: int = 200, text: Optional[str] = None, **headers: str) -> TransportResponse:
    """Build a transport response; header kwargs use ``_`` for ``-``."""
    return TransportResponse(
        status=status,
        headers={k.replace("_", "-"): v for k, v in headers.items()},
        text=text,
    )
