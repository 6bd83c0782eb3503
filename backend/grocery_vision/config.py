"""
Grocery Vision Backend — Application Configuration
====================================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by every module that needs configuration values.
When:  Loaded once at module import time; validated before the app starts.
"""

from typing import List

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have development defaults. Deployments must provide
    GEMINI_API_KEY (or GOOGLE_API_KEY) and should narrow CORS_ORIGINS.
    """

    # ── Google Gemini ─────────────────────────────────────────────────────
    # Either GEMINI_API_KEY or GOOGLE_API_KEY is accepted, GEMINI_API_KEY wins.
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("gemini_api_key", "google_api_key"),
        description="Google Gemini API key used for image analysis",
    )

    gemini_model: str = Field(default="gemini-2.0-flash")

    # Seconds to wait for a single Gemini response before giving up
    oracle_timeout: int = Field(default=60, ge=5, le=600)

    # ── Uploads ───────────────────────────────────────────────────────────
    # 10 MiB = 10 * 1024 * 1024
    max_file_size: int = Field(default=10_485_760, ge=1_048_576, le=52_428_800)

    # ── CORS ──────────────────────────────────────────────────────────────
    # Comma-separated; defaults cover the CRA and Vite dev servers
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:5173")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=5000, ge=1024, le=65535)

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Retry Configuration ───────────────────────────────────────────────
    # Each detection is a single oracle call unless an operator opts in
    # to retries by raising retry_max_attempts.
    retry_max_attempts: int = Field(default=1, ge=1, le=10)
    retry_min_wait: int = Field(default=2, ge=1, le=30)
    retry_max_wait: int = Field(default=10, ge=5, le=120)

    # ── Produce Row Filtering ─────────────────────────────────────────────
    # Filler rows the model emits for packaged goods in table answers.
    # Comma-separated; names match exactly (case-insensitive), substrings
    # match anywhere in the produce name.
    produce_skip_names: str = Field(default="N/A,-")
    produce_skip_substrings: str = Field(default="packaged")

    @property
    def produce_skip_names_list(self) -> List[str]:
        return [name.strip() for name in self.produce_skip_names.split(",") if name.strip()]

    @property
    def produce_skip_substrings_list(self) -> List[str]:
        return [s.strip() for s in self.produce_skip_substrings.split(",") if s.strip()]

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that critical settings are configured.
        When:  Called during app startup (lifespan).
        How:   Checks each required field and raises ValueError with guidance.
        """
        errors = []
        if not self.gemini_api_key or self.gemini_api_key == "your_gemini_api_key_here":
            errors.append(
                "GEMINI_API_KEY (or GOOGLE_API_KEY) is not set. "
                "Get a key at https://aistudio.google.com/app/apikey"
            )
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Singleton instance, imported throughout the application
settings = Settings()
