from __future__ import annotations

import os
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv


load_dotenv()

MAX_FORMAT_RETRIES = 2
LOG_LEVELS = {"CRITICAL", "FATAL", "ERROR", "WARNING", "WARN", "INFO", "DEBUG", "NOTSET"}


def _int(source: Mapping[str, str], key: str, default: int) -> int:
    raw = source.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from exc


def _float(source: Mapping[str, str], key: str, default: float) -> float:
    raw = source.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{key} must be a number, got {raw!r}") from exc


class Settings:
    """Application settings loaded from environment variables.

    Keep all credentials and config centralized here.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None) -> None:
        source = os.environ if env is None else env

        self.app_env: str = source.get("APP_ENV", "development")
        self.google_api_key: Optional[str] = source.get("GOOGLE_API_KEY") or None
        self.gemini_model: str = source.get("GEMINI_MODEL", "gemini-2.0-flash")
        self.temperature: float = _float(source, "MODEL_TEMPERATURE", 0.7)
        self.top_p: float = _float(source, "MODEL_TOP_P", 0.9)
        self.llm_timeout_seconds: float = _float(source, "LLM_TIMEOUT_SECONDS", 30.0)
        self.memory_window: int = _int(source, "MEMORY_WINDOW", 2)
        self.memory_max_exchanges: int = _int(source, "MEMORY_MAX_EXCHANGES", 10)
        self.format_retries: int = _int(source, "FORMAT_RETRIES", 0)
        self.log_level: str = source.get("LOG_LEVEL", "INFO").upper()
        self.host: str = source.get("HOST", "0.0.0.0")
        self.port: int = _int(source, "PORT", 3000)

        self._validate()

    @property
    def is_dev(self) -> bool:
        return self.app_env.lower() in {"dev", "development", "local"}

    @property
    def memory_cap(self) -> Optional[int]:
        """Stored exchanges per user; never below the read window, ``None`` when unbounded."""
        if self.memory_max_exchanges == 0:
            return None
        return max(self.memory_max_exchanges, self.memory_window)

    def _validate(self) -> None:
        if self.memory_window < 0:
            raise ValueError("MEMORY_WINDOW must not be negative")
        if self.memory_max_exchanges < 0:
            raise ValueError("MEMORY_MAX_EXCHANGES must not be negative")
        if not 0 <= self.format_retries <= MAX_FORMAT_RETRIES:
            raise ValueError(f"FORMAT_RETRIES must be in [0, {MAX_FORMAT_RETRIES}]")
        if self.llm_timeout_seconds <= 0:
            raise ValueError("LLM_TIMEOUT_SECONDS must be positive")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError("MODEL_TEMPERATURE must be in [0, 2]")
        if not 0.0 < self.top_p <= 1.0:
            raise ValueError("MODEL_TOP_P must be in (0, 1]")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(LOG_LEVELS)}, got {self.log_level!r}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
