"""Application settings loaded from environment variables.

Environment Configuration:
    PARLEY_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: PostgreSQL connection string (required)

LLM Configuration:
    OPENAI_API_KEY: Platform OpenAI key (required in all environments)
    OPENROUTER_API_KEY: OpenRouter key (optional; projects selecting
        OpenRouter fail with a configuration error when unset)
    DEFAULT_LLM_MODEL: Model used when a project has none configured
    LLM_MAX_TOKENS / LLM_TEMPERATURE: Fixed generation parameters
    LLM_TIMEOUT_S: Upper bound on a single completion call

Storage Configuration:
    SUPABASE_URL / SUPABASE_SERVICE_KEY: Supabase Storage credentials
        (required in staging/prod; local/test fall back to in-memory storage)
    STORAGE_BUCKET: Bucket holding uploaded project files

Extraction:
    EXTRACTION_CACHE_MAX_CHARS: Cap applied to cached extracted text

HTTP:
    CORS_ALLOW_ORIGINS: Browser origins allowed to call the pipeline (default "*")

Settings are validated once at startup and passed explicitly into the
pipeline. Services never read the environment mid-request.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Validation rules:
    - DATABASE_URL is always required
    - OPENAI_API_KEY is always required
    - SUPABASE_URL and SUPABASE_SERVICE_KEY are required in staging and prod
    - LLM_TEMPERATURE must be within 0.0-2.0, LLM_MAX_TOKENS positive
    """

    parley_env: Environment = Field(default=Environment.LOCAL, alias="PARLEY_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]

    # LLM provider credentials
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    openrouter_api_key: str | None = Field(default=None, alias="OPENROUTER_API_KEY")
    openrouter_referer: str = Field(default="https://parley.local", alias="OPENROUTER_REFERER")

    # Completion parameters (fixed per deployment)
    default_llm_model: str = Field(default="gpt-4o-mini", alias="DEFAULT_LLM_MODEL")
    llm_max_tokens: int = Field(default=2000, alias="LLM_MAX_TOKENS")
    llm_temperature: float = Field(default=0.7, alias="LLM_TEMPERATURE")
    llm_timeout_s: int = Field(default=45, alias="LLM_TIMEOUT_S")

    # Supabase Storage settings
    supabase_url: str | None = Field(default=None, alias="SUPABASE_URL")
    supabase_service_key: str | None = Field(default=None, alias="SUPABASE_SERVICE_KEY")
    storage_bucket: str = Field(default="project-files", alias="STORAGE_BUCKET")

    # Extraction cache bound (characters)
    extraction_cache_max_chars: int = Field(default=8000, alias="EXTRACTION_CACHE_MAX_CHARS")

    # Browser origins allowed to call the pipeline (comma-separated, "*" for any)
    cors_allow_origins: str = Field(default="*", alias="CORS_ALLOW_ORIGINS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure required settings are set for the current environment."""
        if not self.openai_api_key:
            raise ValueError(
                "Missing required LLM credential: OPENAI_API_KEY. "
                "Set it in the environment or in .env."
            )

        if self.parley_env in (Environment.STAGING, Environment.PROD):
            missing_storage = []
            if not self.supabase_url:
                missing_storage.append("SUPABASE_URL")
            if not self.supabase_service_key:
                missing_storage.append("SUPABASE_SERVICE_KEY")
            if missing_storage:
                raise ValueError(
                    f"Missing required storage settings for PARLEY_ENV={self.parley_env.value}: "
                    f"{', '.join(missing_storage)}"
                )

        if not 0.0 <= self.llm_temperature <= 2.0:
            raise ValueError("LLM_TEMPERATURE must be between 0.0 and 2.0")

        if self.llm_max_tokens < 1:
            raise ValueError("LLM_MAX_TOKENS must be positive")

        if self.extraction_cache_max_chars < 1:
            raise ValueError("EXTRACTION_CACHE_MAX_CHARS must be positive")

        return self

    @property
    def uses_real_storage(self) -> bool:
        """Whether Supabase Storage credentials are configured."""
        return bool(self.supabase_url and self.supabase_service_key)

    @property
    def strict_log_keys(self) -> bool:
        """Forbidden log keys raise in local and test, and only warn elsewhere."""
        return self.parley_env in (Environment.LOCAL, Environment.TEST)

    @property
    def enable_openrouter(self) -> bool:
        """OpenRouter is only routable when a key is configured."""
        return bool(self.openrouter_api_key)

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS_ALLOW_ORIGINS into a list, dropping blanks."""
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    def api_key_for(self, provider: str) -> str | None:
        """Return the platform credential for a provider, if configured."""
        if provider == "openai":
            return self.openai_api_key
        if provider == "openrouter":
            return self.openrouter_api_key
        return None


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
