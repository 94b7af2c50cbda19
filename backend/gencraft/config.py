"""Process-wide settings, read once from the environment.

Values are resolved on first call to `get_settings()` and cached for the
lifetime of the process. Call `get_settings.cache_clear()` in tests after
changing the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Tuple

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------
DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_GEMINI_IMAGE_MODEL = "gemini-2.0-flash-exp"
DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",      # Next.js dev server
    "http://127.0.0.1:3000",      # Alternative localhost
    "http://localhost:9002",      # Frontend dev server, alternate port
)

PIPELINE_VARIANTS = ("flowchart_first", "advice_first")


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    return tuple(item.strip() for item in raw.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration."""

    gemini_api_key: str = ""
    gemini_api_url: str = DEFAULT_GEMINI_API_URL
    gemini_model: str = DEFAULT_GEMINI_MODEL
    gemini_image_model: str = DEFAULT_GEMINI_IMAGE_MODEL
    temperature: float = 0.7
    request_timeout: float = 60.0
    max_output_tokens: int = 8192

    pipeline_variant: str = "flowchart_first"
    include_review: bool = False

    log_level: str = "INFO"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: Tuple[str, ...] = field(default=DEFAULT_CORS_ORIGINS)

    @property
    def has_api_key(self) -> bool:
        return bool(self.gemini_api_key)


def load_settings() -> Settings:
    """Build a Settings instance from the current environment."""
    api_key = (os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or "").strip()

    variant = os.getenv("GENCRAFT_PIPELINE_VARIANT", "flowchart_first").strip().lower()
    if variant not in PIPELINE_VARIANTS:
        variant = "flowchart_first"

    return Settings(
        gemini_api_key=api_key,
        gemini_api_url=os.getenv("GEMINI_API_URL", DEFAULT_GEMINI_API_URL).rstrip("/"),
        gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL).strip(),
        gemini_image_model=os.getenv("GEMINI_IMAGE_MODEL", DEFAULT_GEMINI_IMAGE_MODEL).strip(),
        temperature=_env_float("GEMINI_TEMPERATURE", 0.7),
        request_timeout=_env_float("GEMINI_REQUEST_TIMEOUT", 60.0),
        max_output_tokens=_env_int("GEMINI_MAX_OUTPUT_TOKENS", 8192),
        pipeline_variant=variant,
        include_review=_env_bool("GENCRAFT_INCLUDE_REVIEW", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        debug=_env_bool("DEBUG", False),
        host=os.getenv("HOST", "127.0.0.1"),
        port=_env_int("PORT", 8000),
        cors_origins=_env_list("CORS_ORIGINS", DEFAULT_CORS_ORIGINS),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings (resolved once)."""
    return load_settings()
