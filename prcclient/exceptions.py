"""Custom exceptions for the PRC client.

Every failure surfaced to callers is a :class:`PRCError`. The ``kind``
attribute tells "ask me again later" apart from "this will never succeed".
"""

from enum import Enum


RATE_LIMIT_STATUS = 429
SERVER_RETRY_STATUSES = frozenset({500, 503})
RETRYABLE_STATUSES = frozenset({RATE_LIMIT_STATUS}) | SERVER_RETRY_STATUSES


class ErrorKind(str, Enum):
    """Taxonomy of caller-visible failures."""

    TRANSPORT = "transport"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    HTTP = "http"
    DECODE = "decode"
    VALIDATION = "validation"


class PRCError(Exception):
    """Base class for client exceptions.

    Subclasses set ``kind`` so callers can branch on a single attribute
    instead of on the exception type.
    """
    kind: ErrorKind = ErrorKind.HTTP

    def __init__(self, message: str = "Request failed"):
        self.message = message
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        return False


class HttpError(PRCError):
    """A classified unsuccessful HTTP response.

    Attributes:
        status: HTTP status code.
        code: Optional API error code decoded from the body.
        retry_after_ms: Retry hint from the ``retry-after`` header.
        command_id: Optional command identifier decoded from the body.
        raw_body: The response body exactly as received.
    """

    def __init__(
        self,
        status: int,
        message: str,
        *,
        code: int | None = None,
        retry_after_ms: float | None = None,
        command_id: str | None = None,
        raw_body: str = "",
    ):
        self.status = status
        self.code = code
        self.retry_after_ms = retry_after_ms
        self.command_id = command_id
        self.raw_body = raw_body
        super().__init__(message)

    @property
    def kind(self) -> ErrorKind:  # type: ignore[override]
        if self.status == RATE_LIMIT_STATUS:
            return ErrorKind.RATE_LIMITED
        if self.status in SERVER_RETRY_STATUSES:
            return ErrorKind.SERVER
        return ErrorKind.HTTP

    @property
    def retryable(self) -> bool:
        return self.status in RETRYABLE_STATUSES

    def __str__(self) -> str:
        return f"[{self.status}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"HttpError(status={self.status!r}, code={self.code!r}, "
            f"message={self.message!r}, retry_after_ms={self.retry_after_ms!r})"
        )


class TransportError(PRCError):
    """Raised when the request could not reach the server at all."""
    kind = ErrorKind.TRANSPORT

    def __init__(self, url: str, cause: BaseException | None = None):
        self.url = url
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Transport failure for {url}{detail}")


class DecodeError(PRCError):
    """Raised when a successful response body is not valid JSON."""
    kind = ErrorKind.DECODE

    def __init__(self, url: str, raw_body: str, detail: str = ""):
        self.url = url
        self.raw_body = raw_body
        super().__init__(f"Failed to parse JSON response from {url}: {detail}")


class ValidationFailure(PRCError):
    """Raised when a decoded payload does not match the expected shape."""
    kind = ErrorKind.VALIDATION

    def __init__(self, url: str, cause: BaseException):
        self.url = url
        self.cause = cause
        super().__init__(f"Response from {url} failed validation: {cause}")
