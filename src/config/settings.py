# src/config/settings.py — v3
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: AI providers,
retry knobs, source budgets, cache / rate-limit / store backends, logging
and the HTTP server.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_EXTRACTIONS_PER_HOUR = 12
MAX_EXTRACTIONS_PER_HOUR = 500


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_default_provider: str = "anthropic"
    llm_default_model: str = "claude-sonnet-4-6"
    llm_default_temperature: float = 0.2
    llm_extraction_max_tokens: int = 2048
    llm_repair_max_tokens: int = 2048

    # Provider API keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""

    # Per-component LLM assignment ("provider:model", highest priority)
    llm_extraction: str = ""
    llm_repair: str = ""

    # === AI retry policy ===
    ai_max_attempts: int = 3
    ai_repair_max_attempts: int = 2
    ai_retry_base_delay_s: float = 1.2
    ai_retry_backoff_factor: float = 2.0

    # === Sources ===
    transcript_max_attempts: int = 3
    transcript_retry_base_delay_s: float = 1.2
    transcript_languages: str = "es,en"
    max_ai_chars: int = 50_000
    max_web_chars: int = 100_000
    web_fetch_timeout_s: float = 15.0
    oembed_timeout_s: float = 4.5
    max_pdf_bytes: int = 10 * 1024 * 1024
    max_docx_bytes: int = 5 * 1024 * 1024

    # === Prompts ===
    prompt_version: str = "extraction-v2"

    # === Cache ===
    cache_backend: Literal["json", "sqlite"] = "json"
    cache_root: Path = Path("~/.actionextractor/cache")

    # === Rate limiting ===
    rate_limit_backend: Literal["memory", "sqlite", "redis"] = "memory"
    rate_limit_per_hour: int = DEFAULT_EXTRACTIONS_PER_HOUR
    rate_limit_window_seconds: int = 3600
    rate_limit_redis_url: str = ""

    # === Relational store ===
    store_path: Path = Path("~/.actionextractor/actionextractor.db")

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # === HTTP server ===
    server_host: str = "127.0.0.1"
    server_port: int = 8000
    session_header: str = "X-User-Id"

    # --- Validators ---

    @field_validator("rate_limit_per_hour")
    @classmethod
    def clamp_rate_limit(cls, v: int) -> int:  # noqa: N805
        """Non-positive limits fall back to the default; large ones are capped."""
        if v <= 0:
            return DEFAULT_EXTRACTIONS_PER_HOUR
        return min(v, MAX_EXTRACTIONS_PER_HOUR)

    @field_validator("ai_max_attempts", "ai_repair_max_attempts", "transcript_max_attempts")
    @classmethod
    def validate_attempts(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("attempt ceilings must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.rate_limit_backend == "redis" and not self.rate_limit_redis_url:
            errors.append("RATE_LIMIT_BACKEND=redis requires RATE_LIMIT_REDIS_URL")

        if self.rate_limit_window_seconds <= 0:
            errors.append("RATE_LIMIT_WINDOW_SECONDS must be > 0")

        if self.max_ai_chars <= 0 or self.max_web_chars <= 0:
            errors.append("MAX_AI_CHARS and MAX_WEB_CHARS must be > 0")

        if self.max_pdf_bytes <= 0 or self.max_docx_bytes <= 0:
            errors.append("MAX_PDF_BYTES and MAX_DOCX_BYTES must be > 0")

        for attr in ("llm_extraction", "llm_repair"):
            value = getattr(self, attr)
            if value and ":" not in value:
                errors.append(f"{attr.upper()} must use the 'provider:model' form")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def transcript_languages_list(self) -> list[str]:
        """Parse comma-separated preferred caption languages."""
        return [c.strip() for c in self.transcript_languages.split(",") if c.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or the CLI).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
