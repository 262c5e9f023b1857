"""Core utilities: settings, logging and the HTTP transport."""

from prcclient.core.config import PacingConfig, Settings, settings
from prcclient.core.http_client import HttpxTransport, TransportResponse, create_http_client
from prcclient.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "PacingConfig",
    "Settings",
    "settings",
    "HttpxTransport",
    "TransportResponse",
    "create_http_client",
    "get_logger",
    "get_log_context",
    "setup_logging",
]
