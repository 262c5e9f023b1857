"""HTTP transport built on httpx.

The request orchestrator only depends on the :data:`Transport` call shape;
:class:`HttpxTransport` is the implementation used unless a client is given
another one.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Mapping, Optional, Union

import httpx

from prcclient.core.config import Settings, settings as default_settings
from prcclient.exceptions import TransportError


@dataclass
class TransportResponse:
    """What the orchestrator needs from a completed HTTP exchange."""

    status: int
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    text: Optional[str] = None
    reason: str = ""

    def __post_init__(self) -> None:
        if not isinstance(self.headers, httpx.Headers):
            self.headers = httpx.Headers(self.headers)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


Body = Union[str, bytes, None]
Transport = Callable[[str, str, Mapping[str, str], Body], Awaitable[TransportResponse]]


def create_http_client(config: Optional[Settings] = None, **kwargs) -> httpx.AsyncClient:
    """Create an HTTP client with the configured timeouts and pool limits.

    The returned client should be closed when done:
        async with create_http_client() as client:
            ...

    Args:
        config: Settings to read defaults from.
        **kwargs: Override defaults. Can include:
            - timeout: Single timeout value (overrides all granular timeouts)
            - connect_timeout, read_timeout, write_timeout, pool_timeout
            - max_connections, max_keepalive_connections, keepalive_expiry
            - transport: custom httpx transport (e.g. httpx.MockTransport)
    """
    cfg = config or default_settings

    timeout_override = kwargs.get("timeout")
    if timeout_override is not None:
        timeout = httpx.Timeout(timeout_override)
    else:
        timeout = httpx.Timeout(
            connect=kwargs.get("connect_timeout", cfg.httpx_connect_timeout),
            read=kwargs.get("read_timeout", cfg.httpx_read_timeout),
            write=kwargs.get("write_timeout", cfg.httpx_write_timeout),
            pool=kwargs.get("pool_timeout", cfg.httpx_pool_timeout),
        )

    limits = httpx.Limits(
        max_connections=kwargs.get("max_connections", cfg.httpx_max_connections),
        max_keepalive_connections=kwargs.get(
            "max_keepalive_connections", cfg.httpx_max_keepalive_connections
        ),
        keepalive_expiry=kwargs.get("keepalive_expiry", cfg.httpx_keepalive_expiry),
    )
    client_kwargs = {"timeout": timeout, "limits": limits}
    if kwargs.get("transport") is not None:
        client_kwargs["transport"] = kwargs["transport"]
    return httpx.AsyncClient(**client_kwargs)


class HttpxTransport:
    """Transport backed by an ``httpx.AsyncClient``.

    A client passed in is shared and left open; a client created here is
    owned and closed by :meth:`aclose`.
    """

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[Settings] = None,
    ):
        self._owns_client = http_client is None
        self._client = http_client or create_http_client(config)

    @property
    def http_client(self) -> httpx.AsyncClient:
        return self._client

    async def __call__(
        self,
        url: str,
        method: str,
        headers: Mapping[str, str],
        body: Body,
    ) -> TransportResponse:
        try:
            resp = await self._client.request(method, url, headers=headers, content=body)
        except httpx.TransportError as exc:
            raise TransportError(url, exc) from exc
        return TransportResponse(
            status=resp.status_code,
            headers=resp.headers,
            text=resp.text,
            reason=resp.reason_phrase,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
