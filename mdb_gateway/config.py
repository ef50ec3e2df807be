"""
Configuration management for MDB_GATEWAY.

Configuration is a Pydantic model. It can be built directly or from
environment variables with GatewayConfig.from_env().
"""

import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic import ValidationError as PydanticValidationError

from .constants import (
    DEFAULT_FANOUT_LIMIT,
    DEFAULT_HEALTH_TIMEOUT_SECONDS,
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
)
from .exceptions import ConfigurationError

# Environment variable -> config field
ENV_VARS: dict[str, str] = {
    "MONGO_URI": "mongo_uri",
    "DB_NAME": "db_name",
    "MONGO_MAX_POOL_SIZE": "max_pool_size",
    "MONGO_MIN_POOL_SIZE": "min_pool_size",
    "MONGO_SERVER_SELECTION_TIMEOUT_MS": "server_selection_timeout_ms",
    "MONGO_MAX_IDLE_TIME_MS": "max_idle_time_ms",
    "GATEWAY_FANOUT_LIMIT": "fanout_limit",
    "GATEWAY_HEALTH_TIMEOUT_SECONDS": "health_timeout_seconds",
}


class GatewayConfig(BaseModel):
    """
    Gateway configuration.

    Example:
        # Using environment variables
        config = GatewayConfig.from_env()

        # Or using direct parameters
        config = GatewayConfig(
            mongo_uri="mongodb://localhost:27017",
            db_name="gateway",
        )
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    mongo_uri: str = Field(..., min_length=1, description="MongoDB connection URI")
    db_name: str = Field(..., min_length=1, description="Database name")
    max_pool_size: int = Field(
        DEFAULT_MAX_POOL_SIZE, ge=1, description="Maximum connection pool size"
    )
    min_pool_size: int = Field(
        DEFAULT_MIN_POOL_SIZE, ge=1, description="Minimum connection pool size"
    )
    server_selection_timeout_ms: int = Field(
        DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
        ge=1000,
        description="Server selection timeout in milliseconds",
    )
    max_idle_time_ms: int = Field(
        DEFAULT_MAX_IDLE_TIME_MS,
        ge=0,
        description="Maximum idle time before pooled connections close",
    )
    fanout_limit: int = Field(
        DEFAULT_FANOUT_LIMIT,
        ge=1,
        description="Concurrent per-collection operations during a fan-out",
    )
    health_timeout_seconds: float = Field(
        DEFAULT_HEALTH_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout for the MongoDB ping health check",
    )

    @model_validator(mode="after")
    def _check_pool_bounds(self) -> "GatewayConfig":
        if self.min_pool_size > self.max_pool_size:
            raise ValueError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})"
            )
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> "GatewayConfig":
        """
        Build a configuration from environment variables.

        Explicit keyword overrides win over the environment; overrides set
        to None are ignored.

        Raises:
            ConfigurationError: If required values are missing or invalid
        """
        values: dict[str, Any] = {}
        for env_var, field_name in ENV_VARS.items():
            raw = os.getenv(env_var)
            if raw not in (None, ""):
                values[field_name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**values)
        except PydanticValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ConfigurationError(
                f"Invalid gateway configuration: {first.get('msg')}",
                config_key=location,
                config_value=values.get(location) if location else None,
                context={"error_count": e.error_count()},
            ) from e
