"""
Shared configuration management for the CenterPoint Connect resilience layer.
"""

from typing import Dict, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


ENV_PREFIX = "CENTERPOINT_"


class ConnectConfig(BaseSettings):
    """Resolved configuration consumed by the cache, batcher, limiter and monitor."""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Auth
    api_token: Optional[str] = None
    rate_limit_enabled: bool = True
    rate_limit_max_attempts: int = Field(default=5, ge=1)
    rate_limit_window_ms: int = Field(default=15 * 60 * 1000, ge=1000)
    token_cache_ttl_ms: int = Field(default=5 * 60 * 1000, ge=0)
    token_validation_enabled: bool = True

    # Performance
    cache_enabled: bool = True
    cache_ttl_ms: int = Field(default=5 * 60 * 1000, ge=0)
    cache_max_size: int = Field(default=1000, ge=1)
    batching_enabled: bool = False
    batch_window_ms: int = Field(default=100, ge=10)
    max_batch_size: int = Field(default=10, ge=1)
    request_timeout_ms: int = Field(default=30000, ge=1000)
    retry_attempts: int = Field(default=3, ge=0)
    retry_delay_ms: int = Field(default=1000, ge=100)

    # Logging
    log_level: Literal["error", "warn", "info", "debug"] = "info"
    enable_metrics: bool = True
    enable_request_logging: bool = False
    enable_token_masking: bool = True
    log_format: Literal["json", "text"] = "text"

    # Server
    server_name: str = "centerpoint-connect-api"
    server_version: str = "1.1.0"
    base_url: str = "https://api.centerpointconnect.io/centerpoint"
    user_agent: Optional[str] = None
    custom_headers: Dict[str, str] = Field(default_factory=dict)
    host: str = "0.0.0.0"
    port: int = 8090

    environment: Literal["development", "staging", "production"] = Field(
        default="production",
        validation_alias=AliasChoices("CENTERPOINT_ENVIRONMENT", "NODE_ENV"),
    )

    @property
    def cache_ttl_seconds(self) -> float:
        return self.cache_ttl_ms / 1000.0

    @property
    def batch_window_seconds(self) -> float:
        return self.batch_window_ms / 1000.0

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window_ms / 1000.0

    @property
    def token_cache_ttl_seconds(self) -> float:
        return self.token_cache_ttl_ms / 1000.0

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000.0

    @property
    def retry_delay_seconds(self) -> float:
        return self.retry_delay_ms / 1000.0

    def is_development(self) -> bool:
        return self.environment == "development"

    def is_production(self) -> bool:
        return self.environment == "production"


def get_config(**overrides) -> ConnectConfig:
    """Get a freshly resolved configuration."""
    return ConnectConfig(**overrides)


_ENV_DOCS = {
    "Authentication": [
        ("API_TOKEN", "API token for authentication"),
        ("RATE_LIMIT_ENABLED", "Enable rate limiting (true/false)"),
        ("RATE_LIMIT_MAX_ATTEMPTS", "Max auth attempts per window"),
        ("RATE_LIMIT_WINDOW_MS", "Rate limit window in milliseconds"),
        ("TOKEN_CACHE_TTL_MS", "Token cache TTL in milliseconds"),
        ("TOKEN_VALIDATION_ENABLED", "Enable token validation (true/false)"),
    ],
    "Performance": [
        ("CACHE_ENABLED", "Enable response caching (true/false)"),
        ("CACHE_TTL_MS", "Cache TTL in milliseconds"),
        ("CACHE_MAX_SIZE", "Maximum cache entries"),
        ("BATCHING_ENABLED", "Enable request batching (true/false)"),
        ("BATCH_WINDOW_MS", "Batch window in milliseconds"),
        ("MAX_BATCH_SIZE", "Maximum batch size"),
        ("REQUEST_TIMEOUT_MS", "Request timeout in milliseconds"),
        ("RETRY_ATTEMPTS", "Number of retry attempts"),
        ("RETRY_DELAY_MS", "Retry delay in milliseconds"),
    ],
    "Logging": [
        ("LOG_LEVEL", "Log level (error/warn/info/debug)"),
        ("ENABLE_METRICS", "Enable metrics collection (true/false)"),
        ("ENABLE_REQUEST_LOGGING", "Enable request logging (true/false)"),
        ("ENABLE_TOKEN_MASKING", "Enable token masking in logs (true/false)"),
        ("LOG_FORMAT", "Log format (json/text)"),
    ],
    "Server": [
        ("SERVER_NAME", "Server name identifier"),
        ("SERVER_VERSION", "Server version"),
        ("BASE_URL", "API base URL"),
        ("USER_AGENT", "Custom user agent string"),
    ],
}


def generate_env_docs() -> str:
    """Render the environment variable reference as markdown."""
    lines = ["# Environment Variables Configuration", ""]
    for section, entries in _ENV_DOCS.items():
        lines.append(f"## {section}")
        for name, description in entries:
            lines.append(f"- `{ENV_PREFIX}{name}`: {description}")
        lines.append("")
    lines.append("## General")
    lines.append("- `NODE_ENV`: Environment (development/staging/production)")
    return "\n".join(lines)
