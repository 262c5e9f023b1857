"""High level client for the PRC private-server API."""

import json as jsonlib
import re
from dataclasses import replace
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from prcclient.core.config import PacingConfig, Settings, settings as default_settings
from prcclient.core.http_client import Body, HttpxTransport, Transport
from prcclient.ratelimit.registry import PacerRegistry
from prcclient.services.orchestrator import RequestDescriptor, RequestOrchestrator, Validator
from prcclient.services.response_cache import ResponseCache
from prcclient.services.retry import RetryPolicy

_ABSOLUTE_URL = re.compile(r"^https?:", re.IGNORECASE)

SERVER_KEY_HEADER = "server-key"


class PRCClient:
    """Rate-governed client for one server key.

    Explicit arguments override the matching :class:`Settings` fields.

    Example:
        >>> async with PRCClient(server_key="...") as api:
        ...     status = await api.request("/v1/server")
    """

    def __init__(
        self,
        server_key: Optional[str] = None,
        *,
        base_url: Optional[str] = None,
        requests_per_minute: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        min_interval_ms: Optional[float] = None,
        retries: Optional[int] = None,
        user_agent: Optional[str] = None,
        transport: Optional[Transport] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        debug: Optional[bool] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], float]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        cfg = settings or default_settings
        self.settings = cfg
        self.server_key = server_key if server_key is not None else cfg.server_key
        if not self.server_key:
            raise ValueError("A server key is required (argument or PRC_SERVER_KEY).")

        self.base_url = (base_url or cfg.base_url).rstrip("/")
        self.user_agent = user_agent if user_agent is not None else cfg.user_agent
        self.debug = cfg.debug if debug is None else bool(debug)

        pacing = replace(
            PacingConfig.from_settings(cfg),
            requests_per_minute=requests_per_minute or cfg.requests_per_minute,
            max_concurrency=max_concurrency or cfg.max_concurrency,
            min_interval_ms=cfg.min_interval_ms if min_interval_ms is None else min_interval_ms,
            debug=self.debug,
        )
        self.registry = PacerRegistry(pacing, clock=clock)
        self.cache = ResponseCache()

        if transport is None:
            self._transport: Optional[HttpxTransport] = HttpxTransport(http_client, cfg)
            transport = self._transport
        else:
            self._transport = None

        self.orchestrator = RequestOrchestrator(
            self.registry,
            self.cache,
            transport,
            retry_policy=RetryPolicy.from_settings(cfg, max_retries=retries),
            debug=self.debug,
            sleep=sleep,
        )

    @property
    def retries(self) -> int:
        return self.orchestrator.retry_policy.max_retries

    async def request(
        self,
        path: str,
        method: str = "GET",
        *,
        json: Any = None,
        body: Body = None,
        headers: Optional[Mapping[str, str]] = None,
        validator: Optional[Validator] = None,
    ) -> Any:
        """Execute a request and return its validated JSON payload.

        Args:
            path: API path (``/v1/server``) or absolute URL.
            method: HTTP method, case-insensitive.
            json: Object serialized as the JSON request body.
            body: Raw request body; ignored when ``json`` is given.
            headers: Extra request headers.
            validator: Pydantic model, ``TypeAdapter`` or callable.
        """
        if json is not None:
            body = jsonlib.dumps(json)
        descriptor = RequestDescriptor(
            method=method or "GET",
            url=self.resolve_url(path),
            headers=self.prepare_headers(headers, has_body=body is not None),
            body=body,
        )
        return await self.orchestrator.execute(descriptor, validator)

    def resolve_url(self, path: str) -> str:
        if _ABSOLUTE_URL.match(path):
            return path
        return f"{self.base_url}{path if path.startswith('/') else '/' + path}"

    def prepare_headers(self, extra: Optional[Mapping[str, str]], has_body: bool) -> dict[str, str]:
        headers = httpx.Headers(extra or {})
        headers[SERVER_KEY_HEADER] = self.server_key
        headers["accept"] = "application/json"
        if self.user_agent and "user-agent" not in headers:
            headers["user-agent"] = self.user_agent
        if has_body and "content-type" not in headers:
            headers["content-type"] = "application/json"
        return dict(headers)

    async def aclose(self) -> None:
        await self.registry.aclose()
        if self._transport is not None:
            await self._transport.aclose()

    async def __aenter__(self) -> "PRCClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
