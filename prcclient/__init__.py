"""Rate-governed async client for the PRC private-server API."""

from prcclient.client import PRCClient
from prcclient.core.config import PacingConfig, Settings
from prcclient.exceptions import (
    DecodeError,
    ErrorKind,
    HttpError,
    PRCError,
    TransportError,
    ValidationFailure,
)
from prcclient.ratelimit.registry import PacerRegistry
from prcclient.services.orchestrator import RequestDescriptor, RequestOrchestrator
from prcclient.services.response_cache import ResponseCache
from prcclient.services.retry import RetryPolicy

__all__ = [
    "PRCClient",
    "PacingConfig",
    "Settings",
    "PacerRegistry",
    "RequestDescriptor",
    "RequestOrchestrator",
    "ResponseCache",
    "RetryPolicy",
    "PRCError",
    "ErrorKind",
    "HttpError",
    "TransportError",
    "DecodeError",
    "ValidationFailure",
]
