"""Centralized configuration management with environment-aware defaults.

This module implements the configuration system using Pydantic Settings,
providing type-safe configuration with validation and environment variable
support.

Configuration sources (in order of precedence):
1. Environment variables (nested values use the ``__`` delimiter,
   e.g. ``VALIDATION_CONFIG__STRICT=true``)
2. .env file in project root
3. Default values in model definitions
4. Environment-based defaults (development vs production)
"""

import os
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogConfig(BaseModel):
    """Logging configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_formatter_type: Literal["console", "json"] | None = Field(
        default=None,
        description="Log output formatter. Auto-detected if not specified.",
    )
    excluded_paths: list[str] = Field(
        default_factory=lambda: ["/health"],
        description="Paths to exclude from request logging",
    )
    slow_request_threshold_ms: int = Field(
        default=1000,
        gt=0,
        description="Threshold for slow request warnings (milliseconds)",
    )
    sensitive_fields: list[str] = Field(
        default_factory=lambda: [
            "password",
            "token",
            "secret",
            "api_key",
            "authorization",
        ],
        description="Field names to redact",
    )


class ObservabilityConfig(BaseModel):
    """Tracing configuration."""

    enable_tracing: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    exporter_type: Literal["console", "otlp", "none"] = Field(
        default="console",
        description="Trace exporter type. Defaults to console for development.",
    )
    exporter_endpoint: str | None = Field(
        default=None,
        description="OTLP exporter endpoint",
    )
    trace_sample_rate: float = Field(
        default=1.0,
        ge=0.0,
        le=1.0,
        description="Trace sampling rate (0.0 to 1.0)",
    )

    @field_validator("exporter_endpoint", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        if v == "":
            return None
        return v


class ValidationConfig(BaseModel):
    """Request/response validation behaviour."""

    strict: bool = Field(
        default=False,
        description="Validate handler responses against the contract",
    )
    development: bool | None = Field(
        default=None,
        description=(
            "Verbose error bodies and hard failures on contract violations. "
            "Defaults to True in the development environment."
        ),
    )


class CorsConfig(BaseModel):
    """CORS headers attached to every response."""

    origin: str = Field(
        default="*",
        description="Allowed origin; an explicit origin enables credentials",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Header overrides merged over the computed defaults",
    )

    def as_options(self) -> dict[str, str]:
        """Flatten into the option mapping accepted by the router."""
        return {"origin": self.origin, **self.headers}


class Settings(BaseSettings):
    """Main settings class for the application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        env_nested_delimiter="__",
    )

    # Application settings
    app_name: str = Field(default="Contractum", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Environment the application is running in",
    )
    debug: bool = Field(default=True, description="Debug mode flag")

    # API settings
    api_host: str = Field(default="127.0.0.1", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Contract settings
    contract_path: str = Field(
        default="openapi.yaml",
        description="Path of the OpenAPI document (YAML or JSON)",
    )
    handlers_module: str | None = Field(
        default=None,
        description="Dotted module exposing register(router) for handler setup",
    )

    validation_config: ValidationConfig = Field(
        default_factory=ValidationConfig, description="Validation configuration"
    )
    cors_config: CorsConfig = Field(
        default_factory=CorsConfig, description="CORS configuration"
    )
    log_config: LogConfig = Field(
        default_factory=LogConfig, description="Logging configuration"
    )
    observability_config: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig, description="Observability configuration"
    )

    def model_post_init(self, __context: object) -> None:
        """Post initialization to set environment-based defaults."""
        super().model_post_init(__context)

        if self.log_config.log_formatter_type is None:
            self.log_config.log_formatter_type = self._detect_formatter()

        if self.validation_config.development is None:
            self.validation_config.development = self.environment == "development"

    def _detect_formatter(self) -> Literal["console", "json"]:
        """Auto-detect log formatter based on environment."""
        if os.getenv("K_SERVICE") or os.getenv("AWS_EXECUTION_ENV"):
            return "json"
        if self.environment == "development":
            return "console"
        return "json"

    @field_validator("handlers_module", mode="before")
    @classmethod
    def empty_str_to_none(cls, v: str | None) -> str | None:
        """Convert empty strings to None for nullable fields."""
        _ = cls
        if v == "":
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
