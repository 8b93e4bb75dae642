"""
Application Configuration

All settings loaded from environment variables.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings

from stockanalyst.services.base import ConfigurationError


# Substrings that mark a value copied from .env.example but never filled in
PLACEHOLDER_MARKERS = ("_here", "placeholder")

# Environment variable name and remediation hint per credential
CREDENTIAL_HINTS = {
    "historical_data_api_key": (
        "HISTORICAL_DATA_API_KEY",
        "Set it to the API key issued by the historical data provider.",
    ),
    "support_resistance_api_key": (
        "SUPPORT_RESISTANCE_API_KEY",
        "Set it to the API key of the support/resistance level service.",
    ),
    "perplexity_api_key": (
        "PERPLEXITY_API_KEY",
        "Create a key at https://www.perplexity.ai/settings/api.",
    ),
    "deepseek_api_key": (
        "DEEPSEEK_API_KEY",
        "Create a key at https://platform.deepseek.com/api_keys.",
    ),
}


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "Stock Analyst Backend"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: str = "development"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database (SQLite via aiosqlite unless overridden)
    database_url: Optional[str] = None  # Defaults to ./data/stockanalyst.db

    # CORS (Frontend URL)
    frontend_url: str = "http://localhost:5173"
    allowed_origins: list[str] = ["http://localhost:5173"]

    # Historical data provider
    historical_data_api_key: Optional[str] = None
    historical_data_api_url: str = "https://stock-historical-data-downloader.maxwu.work/api/v1/download"

    # Support / resistance level provider
    support_resistance_api_key: Optional[str] = None
    support_resistance_api_url: str = "https://stock-level-tracker.replit.app/api/v1/analysis/levels"

    # LLM Providers
    perplexity_api_key: Optional[str] = None
    perplexity_model: str = "sonar-reasoning"
    perplexity_base_url: str = "https://api.perplexity.ai"
    deepseek_api_key: Optional[str] = None
    deepseek_model: str = "deepseek-reasoner"
    deepseek_base_url: str = "https://api.deepseek.com"
    primary_ai_provider: str = "perplexity"  # Options: perplexity, deepseek
    llm_temperature: float = 0.2

    # Timeouts (seconds)
    http_timeout_seconds: float = 30.0
    support_resistance_timeout_seconds: float = 120.0
    llm_timeout_seconds: float = 180.0

    # History browsing
    history_page_size: int = 20

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"

    def require(self, field_name: str) -> str:
        """
        Return a credential value or raise ConfigurationError.

        Missing values and untouched placeholders are both rejected, with a
        message telling the operator which variable to set.
        """
        value = getattr(self, field_name, None)
        env_name, hint = CREDENTIAL_HINTS.get(
            field_name, (field_name.upper(), "Add it to your .env file.")
        )

        if not value:
            raise ConfigurationError(
                "Settings",
                f"{env_name} is not configured. {hint}",
                {"setting": env_name},
            )

        lowered = value.lower()
        if any(marker in lowered for marker in PLACEHOLDER_MARKERS):
            raise ConfigurationError(
                "Settings",
                f"{env_name} appears to be a placeholder value. "
                f"Replace it with your actual credential. {hint}",
                {"setting": env_name},
            )

        return value

    def missing_credentials(self) -> list[str]:
        """Environment variable names of credentials that are unset or placeholders."""
        missing = []
        for field_name, (env_name, _) in CREDENTIAL_HINTS.items():
            try:
                self.require(field_name)
            except ConfigurationError:
                missing.append(env_name)
        return missing


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
