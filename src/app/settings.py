"""Configuration helpers for the vocabulary trainer runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass

from src.db.kv_store import DEFAULT_CAPACITY_BYTES
from src.db.srs_records import SRS_STORAGE_KEY


DEFAULT_CONTENT_MODEL = "gpt-5-mini"


def _positive_int(name: str, default: int) -> int:
    try:
        value = int(os.getenv(name, str(default)))
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc
    if value < 1:
        raise RuntimeError(f"{name} must be a positive integer.")
    return value


@dataclass(frozen=True)
class AppSettings:
    """Strongly typed application settings loaded from environment variables."""

    app_name: str
    app_env: str
    log_level: str
    openai_api_key: str
    content_model: str
    storage_capacity_bytes: int
    srs_storage_key: str

    @classmethod
    def from_env(cls) -> AppSettings:
        """Construct settings directly from environment variables."""
        openai_api_key = os.getenv("OPENAI_API_KEY")
        if not openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is required to generate content.")

        srs_storage_key = os.getenv("SRS_STORAGE_KEY", SRS_STORAGE_KEY).strip()
        if not srs_storage_key:
            raise RuntimeError("SRS_STORAGE_KEY must not be empty.")

        return cls(
            app_name=os.getenv("APP_NAME", "Turkish Flashcards"),
            app_env=os.getenv("APP_ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            openai_api_key=openai_api_key,
            content_model=os.getenv("CONTENT_MODEL", DEFAULT_CONTENT_MODEL),
            storage_capacity_bytes=_positive_int("STORAGE_CAPACITY_BYTES", DEFAULT_CAPACITY_BYTES),
            srs_storage_key=srs_storage_key,
        )
