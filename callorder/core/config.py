"""Application settings and configuration helpers."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Dict, List

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strongly-typed configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    app_name: str = Field(default="Pizzeria Order Line", description="Human-readable service name.")
    environment: str = Field(default="local", description="Deployment environment identifier.")
    log_level: str = Field(default="INFO", description="Application log level.")

    sqlite_path: Path = Field(
        default=Path("db/orders.db"),
        description="Sessions, final orders and transcript DB path.",
    )
    catalog_path: Path | None = Field(
        default=None,
        description="Optional JSON catalog file. The built-in menu is used when omitted.",
    )

    fail_threshold: int = Field(
        default=3,
        ge=1,
        description="Consecutive unrecognized turns before a call is handed to a human.",
    )
    session_save_attempts: int = Field(
        default=3,
        ge=1,
        description="How many times a turn is replayed after a session version conflict.",
    )
    currency_name: str = Field(default="euros", description="Spoken currency name.")
    postal_code_pattern: str = Field(
        default=r"\b\d{5}\b",
        description="Regular expression locating the postal code inside a spoken address.",
    )

    default_country_code: str = Field(
        default="33",
        description="Country calling code used to normalise national phone numbers.",
    )
    tenant_numbers: Dict[str, str] = Field(
        default_factory=dict,
        description="Mapping of dialled numbers to restaurant identifiers. Empty accepts every number.",
    )
    default_tenant: str = Field(default="default", description="Tenant used when no mapping is configured.")

    additional_origins: List[AnyHttpUrl] = Field(
        default_factory=list,
        description="Allowed CORS origins for the restaurant dashboards.",
    )

    openrouter_api_key: str | None = Field(
        default=None,
        description="Optional OpenRouter API key enabling the language-model responder.",
    )
    openrouter_model: str = Field(
        default="openai/gpt-4o-mini",
        description="OpenRouter model identifier.",
    )
    openrouter_referer: str | None = Field(
        default=None,
        description="Referer header required by OpenRouter (your app URL).",
    )
    openrouter_title: str | None = Field(
        default="Pizzeria Order Line",
        description="Title header sent to OpenRouter.",
    )
    responder_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Upper bound for a single responder call.",
    )
    chat_history_limit: int = Field(
        default=30,
        ge=1,
        description="Number of stored turns replayed to the responder.",
    )

    @property
    def cors_origins(self) -> list[str]:
        """Return the deduplicated list of allowed CORS origins."""

        seen: set[str] = set()
        unique: list[str] = []
        for origin in self.additional_origins:
            base = str(origin).rstrip("/")
            if base not in seen:
                seen.add(base)
                unique.append(base)
        return unique

    @property
    def openrouter_enabled(self) -> bool:
        return bool(self.openrouter_api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings instance."""

    return Settings()
