"""Application configuration using Pydantic Settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings are validated at startup. Missing required settings
    or invalid values will cause the application to fail fast with
    clear error messages.
    """

    # API Settings
    api_title: str = Field(default="Omnisearch", description="API title")
    api_version: str = Field(default="1.0.0", description="API version")

    # LLM Settings (any OpenAI-compatible endpoint, e.g. Cerebras)
    llm_api_key: str | None = Field(default=None, description="API key for the LLM endpoint")
    llm_base_url: str | None = Field(
        default=None,
        description="Base URL of an OpenAI-compatible endpoint (None for api.openai.com)",
    )
    llm_model: str = Field(default="gpt-4o-mini", description="Model used for query understanding and ranking")
    llm_timeout: float = Field(default=10.0, gt=0.0, description="Per-request LLM timeout in seconds")
    llm_max_retries: int = Field(default=2, ge=1, le=5, description="LLM attempts before giving up")

    # Query Processing
    enable_query_processing: bool = Field(
        default=True,
        description="Use the LLM to clean the query and detect intent",
    )
    max_query_length: int = Field(default=500, ge=1, le=5000, description="Maximum query length")
    query_cache_size: int = Field(default=1000, ge=1, description="Maximum cached query analyses")
    query_cache_ttl: int = Field(default=300, ge=0, description="Query analysis cache TTL in seconds")

    # Fan-out
    adapter_timeout_seconds: float = Field(
        default=8.0,
        gt=0.0,
        description="Deadline for a single adapter call",
    )
    search_deadline_seconds: float = Field(
        default=15.0,
        gt=0.0,
        description="Global deadline for the whole fan-out",
    )
    max_concurrent_adapter_calls: int = Field(
        default=32,
        ge=1,
        description="Adapter calls allowed in flight across all requests",
    )
    mandatory_provider: str | None = Field(
        default="google",
        description="Provider that must be connected before a search runs (None disables the check)",
    )

    # Ranking
    enable_ai_ranking: bool = Field(default=True, description="Rank results with the LLM")
    ranking_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Deadline for the ranking call before falling back to heuristics",
    )

    # Responses
    default_page_size: int = Field(default=50, ge=1, le=100, description="Default page size")

    # Integrations
    integration_gateway_url: str | None = Field(
        default=None,
        description="Base URL of the integration gateway fronting third-party APIs",
    )
    session_tokens: dict[str, str] = Field(
        default_factory=dict,
        description="Session token -> user id map accepted by the default authenticator",
    )
    provider_tokens: dict[str, dict[str, str]] = Field(
        default_factory=dict,
        description="User id -> {provider: access token} map for the default token fetcher",
    )

    # Logging Settings
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"log_level must be one of {valid_levels}, got '{v}'"
            )
        return v_upper

    @field_validator("llm_api_key")
    @classmethod
    def validate_api_key(cls, v: str | None) -> str | None:
        """Ensure API key is not empty or a placeholder if provided."""
        if v is None:
            return v
        if v.strip() == "":
            raise ValueError("llm_api_key cannot be empty string")
        if v in {"your-api-key-here", "changeme"}:
            raise ValueError(
                "llm_api_key must be set to a valid API key, "
                "not the placeholder value"
            )
        return v

    @field_validator("mandatory_provider", mode="before")
    @classmethod
    def validate_mandatory_provider(cls, v):
        """Normalize provider ids; an empty value disables the check."""
        if v is None:
            return None
        v = str(v).strip().lower()
        return v or None

    @field_validator("integration_gateway_url")
    @classmethod
    def validate_gateway_url(cls, v: str | None) -> str | None:
        """Strip trailing slashes so paths can be appended."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("integration_gateway_url must start with http:// or https://")
        return v.rstrip("/")

    def model_post_init(self, __context) -> None:
        """Additional validation after model initialization."""
        if self.search_deadline_seconds < self.adapter_timeout_seconds:
            raise ValueError(
                f"search_deadline_seconds ({self.search_deadline_seconds}) must be >= "
                f"adapter_timeout_seconds ({self.adapter_timeout_seconds})"
            )

    @property
    def llm_enabled(self) -> bool:
        """Whether an LLM endpoint is configured at all."""
        return self.llm_api_key is not None


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance.

    Returns:
        Settings: The application settings

    Raises:
        ValueError: If settings validation fails
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment.

    Returns:
        Settings: The reloaded application settings
    """
    global _settings
    _settings = Settings()
    return _settings
