from dataclasses import dataclass

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_BASE_URL = "https://api.policeroleplay.community"


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    Every field can be set through a ``PRC_``-prefixed environment variable
    or a ``.env`` file, e.g. ``PRC_SERVER_KEY`` or ``PRC_REQUESTS_PER_MINUTE``.
    """

    # Target API
    base_url: str = DEFAULT_BASE_URL
    server_key: str = ""
    user_agent: str | None = None

    # Pacing baseline
    requests_per_minute: int = 60
    max_concurrency: int = 5
    min_interval_ms: float = 50.0  # Floor applied to header-derived spacing
    window_duration_ms: float = 60_000.0

    # Retry policy
    retries: int = 3
    backoff_base_ms: float = 300.0
    backoff_jitter_ms: float = 200.0
    backoff_max_ms: float = 10_000.0

    # Debug trace events (enqueue, admit, retry, cache hits, ...)
    debug: bool = False

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # HTTP client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 30.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = Field(default=20, ge=1)
    httpx_max_keepalive_connections: int = Field(default=10, ge=0)

    @field_validator("requests_per_minute", "max_concurrency")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate pacing baseline values are positive."""
        if v < 1:
            raise ValueError("requests_per_minute and max_concurrency must be at least 1")
        return v

    @field_validator("retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("retries must not be negative")
        return v

    @field_validator("min_interval_ms", "backoff_base_ms", "backoff_jitter_ms")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("interval and backoff values must not be negative")
        return v

    @field_validator("window_duration_ms", "backoff_max_ms")
    @classmethod
    def validate_duration_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("durations must be positive")
        return v

    @field_validator(
        "httpx_connect_timeout",
        "httpx_read_timeout",
        "httpx_write_timeout",
        "httpx_pool_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    model_config = SettingsConfigDict(env_prefix="PRC_", env_file=".env", extra="ignore")


@dataclass(frozen=True)
class PacingConfig:
    """Immutable pacing parameters shared by every pacer in a registry."""

    requests_per_minute: int = 60
    max_concurrency: int = 5
    min_interval_ms: float = 50.0
    window_duration_ms: float = 60_000.0
    debug: bool = False

    def __post_init__(self) -> None:
        if self.requests_per_minute < 1:
            raise ValueError("requests_per_minute must be at least 1")
        if self.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self.min_interval_ms < 0:
            raise ValueError("min_interval_ms must not be negative")
        if self.window_duration_ms <= 0:
            raise ValueError("window_duration_ms must be positive")

    @property
    def default_interval_ms(self) -> float:
        """Spacing implied by the requests-per-minute baseline."""
        return 60_000.0 / self.requests_per_minute

    @classmethod
    def from_settings(cls, s: Settings) -> "PacingConfig":
        return cls(
            requests_per_minute=s.requests_per_minute,
            max_concurrency=s.max_concurrency,
            min_interval_ms=s.min_interval_ms,
            window_duration_ms=s.window_duration_ms,
            debug=s.debug,
        )


# Global settings instance
settings = Settings()
