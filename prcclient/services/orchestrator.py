"""Request execution: pacing, conditional caching, classification and retries.

:class:`RequestOrchestrator` is the single path every API call takes:

1. attach ``If-None-Match`` when a cached ETag exists for a cacheable request;
2. submit the transport call through the route's pacer;
3. feed the response headers back into the pacer before anything else;
4. serve the cached payload on ``304`` or on an unchanged ETag, classify
   failures, or decode, validate and cache fresh content;
5. retry rate-limited and transient server failures with backoff.
"""

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, TypeAdapter

from prcclient.core.http_client import Body, Transport, TransportResponse
from prcclient.core.logging import get_log_context, get_logger
from prcclient.exceptions import DecodeError, HttpError, PRCError, TransportError, ValidationFailure
from prcclient.ratelimit.headers import ETAG_HEADER, IF_NONE_MATCH_HEADER, clamp_delay_ms
from prcclient.ratelimit.pacer import RoutePacer
from prcclient.ratelimit.registry import PacerRegistry
from prcclient.services.error_classifier import classify_error
from prcclient.services.response_cache import ResponseCache
from prcclient.services.retry import RetryPolicy

logger = get_logger(__name__)

T = TypeVar("T")

NOT_MODIFIED = 304
NO_CONTENT_STATUSES = frozenset({204, 205})

Validator = Union[Type[BaseModel], TypeAdapter, Callable[[Any], Any]]


@dataclass
class RequestDescriptor:
    """A fully resolved request."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Body = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()

    @property
    def cacheable(self) -> bool:
        return self.method == "GET" and self.body is None


def resolve_validator(validator: Optional[Validator]) -> Optional[Callable[[Any], Any]]:
    """Normalize a model class, type adapter or callable into one callable.

    Any exception the resulting callable raises is reported as
    :class:`ValidationFailure`.
    """
    if validator is None:
        return None
    if isinstance(validator, type) and issubclass(validator, BaseModel):
        return validator.model_validate
    if isinstance(validator, TypeAdapter):
        return validator.validate_python
    if callable(validator):
        return validator
    raise TypeError(f"Unsupported validator: {validator!r}")


class RequestOrchestrator:
    """Executes requests against the API.

    Args:
        registry: Pacers keyed by route.
        cache: ETag response cache.
        transport: Coroutine function performing the HTTP exchange.
        retry_policy: Retry limits and backoff.
        debug: Emit trace events; defaults to the registry's setting.
        sleep: Coroutine used to wait between attempts (seconds).
    """

    def __init__(
        self,
        registry: PacerRegistry,
        cache: ResponseCache,
        transport: Transport,
        retry_policy: Optional[RetryPolicy] = None,
        debug: Optional[bool] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.registry = registry
        self.cache = cache
        self.transport = transport
        self.retry_policy = retry_policy or RetryPolicy()
        self.debug = registry.config.debug if debug is None else debug
        self._sleep = sleep or asyncio.sleep

    async def execute(self, request: RequestDescriptor, validator: Optional[Validator] = None) -> Any:
        """Run ``request`` and return the validated payload.

        Raises:
            HttpError: Unsuccessful status, after retries where applicable.
            TransportError: The server could not be reached.
            DecodeError: A successful body was not valid JSON.
            ValidationFailure: The payload did not match ``validator``.
        """
        validate = resolve_validator(validator)
        headers = httpx.Headers(request.headers)

        if request.cacheable:
            cached = self.cache.get(request.method, request.url)
            if cached is not None:
                headers[IF_NONE_MATCH_HEADER] = cached.etag
                self._trace("etag-send", request)

        pacer = self.registry.for_route(request.url)

        async def run() -> Any:
            return await self._attempt(request, headers, pacer, validate)

        return await self._with_retries(lambda: pacer.schedule(run), pacer, request)

    async def _attempt(
        self,
        request: RequestDescriptor,
        headers: httpx.Headers,
        pacer: RoutePacer,
        validate: Optional[Callable[[Any], Any]],
    ) -> Any:
        self._trace("request", request)
        started = time.perf_counter()
        try:
            response = await self.transport(request.url, request.method, headers, request.body)
        except PRCError:
            raise
        except (httpx.TransportError, OSError) as exc:
            raise TransportError(request.url, exc) from exc
        duration_ms = (time.perf_counter() - started) * 1000

        pacer.update_from_headers(response.headers)

        if request.cacheable:
            cached = self.cache.get(request.method, request.url)
            if cached is not None:
                if response.status == NOT_MODIFIED:
                    self._trace("cache-hit", request, status_code=response.status)
                    return cached.payload
                # The API answers 200 with an unchanged ETag instead of 304
                etag = response.headers.get(ETAG_HEADER)
                if response.ok and etag and etag == cached.etag:
                    self._trace("cache-match", request, status_code=response.status)
                    return cached.payload

        if not response.ok:
            error = classify_error(response.status, response.headers, response.text, response.reason)
            if error.retry_after_ms is not None:
                pacer.penalize(error.retry_after_ms)
            self._trace("http-error", request, status_code=error.status, duration_ms=duration_ms)
            raise error

        payload = self._parse_body(response, request.url)
        if validate is not None:
            try:
                payload = validate(payload)
            except Exception as exc:
                raise ValidationFailure(request.url, exc) from exc

        if request.cacheable:
            etag = response.headers.get(ETAG_HEADER)
            if etag:
                self.cache.store(request.method, request.url, etag, payload)
                self._trace("cache-store", request)

        return payload

    async def _with_retries(
        self,
        call: Callable[[], Awaitable[T]],
        pacer: RoutePacer,
        request: RequestDescriptor,
    ) -> T:
        policy = self.retry_policy
        attempt = 0
        while True:
            try:
                return await call()
            except HttpError as error:
                if not policy.is_retryable(error):
                    self._trace("error", request, status_code=error.status, attempt=attempt)
                    raise
                if attempt >= policy.max_retries:
                    logger.warning(
                        f"Max retries ({policy.max_retries}) exceeded for "
                        f"{request.method} {request.url}: {error}",
                        extra=get_log_context(event="error", status_code=error.status, attempt=attempt),
                    )
                    raise

                wait, hinted = policy.delay_for(error, attempt)
                wait = clamp_delay_ms(wait)
                if not hinted:
                    pacer.penalize(wait)
                self._trace("retry", request, status_code=error.status, attempt=attempt, wait_ms=wait)
                if wait > 0:
                    await self._sleep(wait / 1000)
                attempt += 1
            except PRCError as error:
                self._trace("error", request, kind=error.kind.value, attempt=attempt)
                raise

    @staticmethod
    def _parse_body(response: TransportResponse, url: str) -> Any:
        if response.status in NO_CONTENT_STATUSES:
            return None
        text = response.text
        if not text:
            return None
        try:
            return json.loads(text)
        except (ValueError, RecursionError) as exc:
            raise DecodeError(url, text, str(exc)) from exc

    def _trace(self, event: str, request: RequestDescriptor, **fields: Any) -> None:
        if self.debug:
            logger.debug(
                event,
                extra=get_log_context(event=event, method=request.method, url=request.url, **fields),
            )
