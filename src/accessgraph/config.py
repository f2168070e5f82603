"""Configuration contract for accessgraph.

Pydantic-validated settings shared by the resolution engine, the HTTP
collaborators and the logging setup. Library code receives a ResolverConfig
instance; direct os.environ/os.getenv usage is confined to
load_resolver_config_from_env().
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class LogLevel(str, Enum):
    """Standard log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


class ResolverConfig(BaseModel):
    """Settings for a permission resolution scan.

    Environment variables:
        LOG_LEVEL                  DEBUG | INFO | WARNING | ERROR | CRITICAL
        LOG_JSON                   JSON log output (true/false)
        TENANT_ID                  tenant the scan runs against
        GRAPH_BASE_URL             directory API root
        HTTP_TIMEOUT_SECONDS       per-request timeout for HTTP collaborators
        GRAPH_PAGE_SIZE            $top used for directory listings
        MAX_CONCURRENT_RESOURCES   parallel resources in resolve_many()
        REDIS_URL                  shared known-group cache (optional)
        CACHE_TTL_SECONDS          lifetime of redis cache entries
    """

    # Logging
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Use JSON log format (default: plain text)",
    )

    # Tenant isolation
    tenant_id: Optional[str] = Field(
        default=None,
        description="Tenant the scan runs against; namespaces shared cache keys",
    )

    # Transport
    graph_base_url: str = Field(
        default=DEFAULT_GRAPH_BASE_URL,
        description="Directory (Graph) API root",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Per-request timeout for HTTP collaborators",
    )
    page_size: int = Field(
        default=100,
        ge=1,
        le=999,
        description="Page size requested from paginated directory listings",
    )

    # Scan
    max_concurrent_resources: int = Field(
        default=4,
        ge=1,
        description="How many resources resolve_many() processes in parallel",
    )

    # Shared cache
    redis_url: Optional[str] = Field(
        default=None,
        description="Redis URL for a cross-process known-group cache",
    )
    cache_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="Lifetime of redis cache entries (one scan)",
    )

    @field_validator("redis_url")
    @classmethod
    def validate_redis_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must start with redis://, rediss://, or unix://")
        return v

    @field_validator("graph_base_url")
    @classmethod
    def validate_graph_base_url(cls, v: str) -> str:
        if not v.startswith(("https://", "http://")):
            raise ValueError("Graph base URL must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Convert string to LogLevel enum."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            try:
                return LogLevel[v.upper()]
            except KeyError:
                raise ValueError(f"Invalid log level: {v}. Must be one of {[e.value for e in LogLevel]}")
        raise ValueError(f"Log level must be string or LogLevel enum, got {type(v)}")

    model_config = {
        "use_enum_values": True,
        "extra": "forbid",
    }


def _env_flag(value: str) -> bool:
    return value.lower() in ("true", "1", "yes", "on")


def load_resolver_config_from_env() -> ResolverConfig:
    """Load resolver configuration from environment variables.

    This is the ONLY place where os.getenv is allowed. Unset variables fall
    back to the ResolverConfig defaults.

    Returns:
        ResolverConfig instance with values from environment or defaults.
    """
    import os

    return ResolverConfig(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_json=_env_flag(os.getenv("LOG_JSON", "false")),
        tenant_id=os.getenv("TENANT_ID"),
        graph_base_url=os.getenv("GRAPH_BASE_URL", DEFAULT_GRAPH_BASE_URL),
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
        page_size=int(os.getenv("GRAPH_PAGE_SIZE", "100")),
        max_concurrent_resources=int(os.getenv("MAX_CONCURRENT_RESOURCES", "4")),
        redis_url=os.getenv("REDIS_URL"),
        cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "3600")),
    )


__all__ = [
    "DEFAULT_GRAPH_BASE_URL",
    "LogLevel",
    "ResolverConfig",
    "load_resolver_config_from_env",
]
