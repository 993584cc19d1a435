"""Core configuration module for textswap-service.

Loads settings from TEXTSWAP_* prefixed environment variables using Pydantic Settings.

Patterns applied:
- pydantic-settings BaseSettings (Pydantic v2 split)
- env_prefix = "TEXTSWAP_" for namespace isolation
- @field_validator + @classmethod (Pydantic v2 pattern)
- @lru_cache for singleton pattern
- PEP 604 union syntax (X | None)

The upstream API key is the one setting that is also read without the
prefix (OPENROUTER_API_KEY), since that is the name the upstream documents.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings

from textswap.core.constants import (
    DEFAULT_ANALYZE_TEXT_MODELS,
    DEFAULT_BATCH_CONCURRENCY,
    DEFAULT_CORS_ORIGIN_REGEX,
    DEFAULT_CORS_ORIGINS,
    DEFAULT_DETECT_TEXT_MODELS,
    DEFAULT_EDIT_IMAGE_MODELS,
    DEFAULT_ENVIRONMENT,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MODELS_TIMEOUT_SECONDS,
    DEFAULT_PORT,
    DEFAULT_REPLACE_TEXT_MODELS,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SERVICE_NAME,
    DEFAULT_UPSTREAM_BASE_URL,
)


class Settings(BaseSettings):
    """Application settings loaded from TEXTSWAP_* environment variables.

    Example: TEXTSWAP_PORT=8080, TEXTSWAP_LOG_LEVEL=DEBUG,
    TEXTSWAP_DETECT_TEXT_MODELS='["openai/gpt-4o"]'

    Attributes:
        service_name: Service identifier for logging.
        port: HTTP port (1-65535). Default: 3001.
        host: Bind address. Default: 0.0.0.0.
        environment: Deployment environment. Default: development.
        log_level: Logging verbosity. Default: INFO.
        openrouter_api_key: Process-wide default upstream credential.
        upstream_base_url: Base URL of the chat-completions API.
        request_timeout_seconds: Bound on a single completion call.
        models_timeout_seconds: Bound on the model listing call.
        batch_concurrency: Jobs run concurrently per batch group.
        discover_models: Narrow policies to upstream-listed models.
        image_modalities: Optional ``modalities`` sent with image requests.
    """

    # =========================================================================
    # Core Settings
    # =========================================================================
    service_name: str = Field(
        default=DEFAULT_SERVICE_NAME,
        description="Service name for identification",
    )
    port: int = Field(
        default=DEFAULT_PORT,
        ge=1,
        le=65535,
        description="HTTP server port",
    )
    host: str = Field(
        default=DEFAULT_HOST,
        description="HTTP server bind address",
    )
    environment: Literal["development", "staging", "production"] = Field(
        default=DEFAULT_ENVIRONMENT,
        description="Deployment environment",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    # =========================================================================
    # Upstream Settings
    # =========================================================================
    openrouter_api_key: str = Field(
        default="",
        validation_alias=AliasChoices(
            "TEXTSWAP_OPENROUTER_API_KEY", "OPENROUTER_API_KEY"
        ),
        description="Default bearer credential for the upstream API",
    )
    upstream_base_url: str = Field(
        default=DEFAULT_UPSTREAM_BASE_URL,
        description="Base URL of the OpenAI-style upstream API",
    )
    request_timeout_seconds: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout for one chat completion call",
    )
    models_timeout_seconds: float = Field(
        default=DEFAULT_MODELS_TIMEOUT_SECONDS,
        gt=0,
        description="Timeout for the model listing call",
    )
    image_modalities: list[str] = Field(
        default_factory=list,
        description="Modalities sent with image-producing requests (empty = omit)",
    )

    # =========================================================================
    # Orchestration Settings
    # =========================================================================
    batch_concurrency: int = Field(
        default=DEFAULT_BATCH_CONCURRENCY,
        ge=1,
        description="Number of batch jobs run concurrently per group",
    )
    discover_models: bool = Field(
        default=False,
        description="Narrow model policies to models listed by the upstream",
    )
    detect_text_models: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DETECT_TEXT_MODELS),
    )
    edit_image_models: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EDIT_IMAGE_MODELS),
    )
    replace_text_models: list[str] = Field(
        default_factory=lambda: list(DEFAULT_REPLACE_TEXT_MODELS),
    )
    analyze_text_models: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ANALYZE_TEXT_MODELS),
    )

    # =========================================================================
    # HTTP / Observability
    # =========================================================================
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CORS_ORIGINS),
    )
    cors_allowed_origin_regex: str | None = Field(
        default=DEFAULT_CORS_ORIGIN_REGEX,
    )
    tracing_enabled: bool = Field(
        default=False,
        description="Install an OpenTelemetry tracer provider at startup",
    )
    otlp_endpoint: str | None = Field(
        default=None,
        description="OTLP gRPC endpoint; console exporter when unset",
    )

    # =========================================================================
    # Pydantic v2 Model Configuration
    # =========================================================================
    model_config = {
        "env_prefix": "TEXTSWAP_",
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }

    # =========================================================================
    # Validators (Pydantic v2 pattern: @field_validator + @classmethod)
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level to uppercase.

        Args:
            v: Input log level string.

        Returns:
            Normalized uppercase log level.

        Raises:
            ValueError: If log level is not valid.
        """
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized not in valid_levels:
            msg = f"log_level must be one of {valid_levels}, got '{v}'"
            raise ValueError(msg)
        return normalized

    @field_validator(
        "detect_text_models",
        "edit_image_models",
        "replace_text_models",
        "analyze_text_models",
    )
    @classmethod
    def validate_model_list(cls, v: list[str]) -> list[str]:
        """Drop blank ids and duplicates while keeping preference order."""
        seen: set[str] = set()
        cleaned: list[str] = []
        for model_id in v:
            model_id = model_id.strip()
            if model_id and model_id not in seen:
                seen.add(model_id)
                cleaned.append(model_id)
        return cleaned


@lru_cache
def get_settings() -> Settings:
    """Get singleton Settings instance.

    Returns:
        Cached Settings instance.
    """
    return Settings()
