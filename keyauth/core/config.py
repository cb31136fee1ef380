"""Configuration for the keyauth client.

Process-wide defaults come from environment variables (``KEYAUTH_*``) or a
``.env`` file through pydantic-settings. Per-instance options are resolved
once, at client construction, into a :class:`ClientOptions` model.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LogLevel = Literal["error", "warning", "info", "debug", "dev"]

CLIENT_BASE_URL = "https://keyauth.win/api/1.2/"
SELLER_BASE_URL = "https://keyauth.win/api/seller/"


class Settings(BaseSettings):
    """Process-wide defaults loaded from environment variables.

    All settings can be configured via ``KEYAUTH_``-prefixed environment
    variables or a ``.env`` file.
    """

    # Endpoints
    client_base_url: str = CLIENT_BASE_URL
    seller_base_url: str = SELLER_BASE_URL

    # HTTP transport settings
    http_timeout: float = 10.0
    http_max_retries: int = 2  # Network errors / 5xx only
    http_max_connections: int = 20
    http_max_keepalive_connections: int = 10
    http_keepalive_expiry: float = 30.0

    # Rate limiting settings (token bucket)
    ratelimit_max_tokens: int = 10
    ratelimit_refill_rate: int = 5000  # Milliseconds per token

    # Logging settings
    log_level: LogLevel = "info"
    log_format: str = "text"  # text | json

    @field_validator("ratelimit_max_tokens", "ratelimit_refill_rate")
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator("http_timeout")
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @field_validator("http_max_retries")
    @classmethod
    def validate_retries_not_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("http_max_retries cannot be negative")
        return v

    model_config = SettingsConfigDict(
        env_prefix="KEYAUTH_", env_file=".env", extra="ignore"
    )


# Global settings instance
settings = Settings()


class RateLimitSettings(BaseModel):
    """Token bucket options.

    Attributes:
        max_tokens: Bucket capacity
        refill_rate: Milliseconds needed to add one token
    """

    model_config = ConfigDict(frozen=True)

    max_tokens: int = Field(default_factory=lambda: settings.ratelimit_max_tokens, ge=1)
    refill_rate: int = Field(default_factory=lambda: settings.ratelimit_refill_rate, ge=1)


class LoggerSettings(BaseModel):
    """Client logger options. The logger is silent unless ``active``."""

    model_config = ConfigDict(frozen=True)

    active: bool = False
    level: LogLevel = Field(default_factory=lambda: settings.log_level)
    log_format: str = Field(default_factory=lambda: settings.log_format)


class ClientOptions(BaseModel):
    """Options accepted by :class:`~keyauth.api.ClientApi` and
    :class:`~keyauth.api.SellerApi`.

    ``ratelimit`` and ``base_url`` are optional because their defaults depend
    on the client type; each API class resolves them at construction.
    """

    model_config = ConfigDict(frozen=True)

    ratelimit: Optional[RateLimitSettings] = None
    base_url: Optional[str] = None
    logger: LoggerSettings = Field(default_factory=LoggerSettings)
    timeout: float = Field(default_factory=lambda: settings.http_timeout, gt=0)
    max_retries: int = Field(default_factory=lambda: settings.http_max_retries, ge=0)
