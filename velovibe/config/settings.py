"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Using Pydantic's BaseSettings means we get:
- Type validation at startup (fail fast if config is wrong)
- Documentation of what's required vs optional
- Easy testing with different configurations

Coaching is optional: without an Anthropic key the feature is simply off.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "VeloVibe API"
    api_version: str = "v1"

    # Anthropic Configuration
    anthropic_api_key: str = Field(
        default="",
        description="Claude API key. Leave empty to disable AI coaching."
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model used for coaching suggestions."
    )
    anthropic_max_tokens: int = Field(
        default=512,
        description="Max tokens for Claude responses. Coaching replies are two sentences."
    )
    anthropic_temperature: float = Field(
        default=0.7,
        description="Temperature for Claude. Some variety keeps the hype fresh."
    )
    anthropic_timeout_seconds: float = Field(
        default=20.0,
        description="Request timeout for the coaching call. Slow calls fall back locally."
    )

    # Storage Configuration
    data_dir: str = Field(
        default="./data",
        description="Directory holding the persisted exercise and workout JSON files."
    )
    storage_mock_mode: bool = Field(
        default=False,
        description="Use in-memory storage instead of files. Data is lost on restart."
    )

    # Derived views
    trend_window_size: int = Field(
        default=20,
        ge=1,
        description="Number of most recent sessions shown in the trend series."
    )
    coach_history_size: int = Field(
        default=5,
        ge=1,
        description="Number of most recent sessions sent to the coaching model."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def coaching_enabled(self) -> bool:
        """Coaching runs only when a Claude credential is configured."""
        return bool(self.anthropic_api_key.strip())

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Report configuration problems that Pydantic can't see on its own.

        Returns list of human-readable problems. A missing Anthropic key is
        not listed: it only turns coaching off.
        """
        problems = []

        if not self.storage_mock_mode and not self.data_dir.strip():
            problems.append("DATA_DIR")

        if self.coaching_enabled and not self.anthropic_model:
            problems.append("ANTHROPIC_MODEL")

        return problems


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Settings are loaded once per process.
    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
