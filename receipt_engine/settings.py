"""Application settings management for the receipt extraction service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

OCR_ENGINES = ("rapidocr", "local")
DEFAULT_OCR_TIMEOUT = 30.0


@dataclass(frozen=True)
class Settings:
    ocr_engine: str
    ocr_language: str
    ocr_timeout: float
    timezone: Optional[str]

    @staticmethod
    def _read_env(name: str, default: str) -> str:
        value = os.getenv(name)
        if value is None or not value.strip():
            return default
        return value.strip()

    @classmethod
    def load(cls) -> "Settings":
        _ensure_env_file_loaded()
        ocr_engine = cls._read_env("OCR_ENGINE", "rapidocr").lower()
        if ocr_engine not in OCR_ENGINES:
            raise RuntimeError(f"OCR_ENGINE must be one of {', '.join(OCR_ENGINES)}")
        ocr_language = cls._read_env("OCR_LANGUAGE", "eng")

        raw_timeout = cls._read_env("OCR_TIMEOUT_SECONDS", str(DEFAULT_OCR_TIMEOUT))
        try:
            ocr_timeout = float(raw_timeout)
        except ValueError as exc:
            raise RuntimeError("OCR_TIMEOUT_SECONDS must be a number") from exc
        if ocr_timeout <= 0:
            raise RuntimeError("OCR_TIMEOUT_SECONDS must be positive")

        timezone = os.getenv("TZ")
        timezone = timezone.strip() if timezone and timezone.strip() else None
        if timezone:
            try:
                ZoneInfo(timezone)
            except (ZoneInfoNotFoundError, ValueError) as exc:
                raise RuntimeError(f"TZ is not a known timezone: {timezone}") from exc

        return cls(
            ocr_engine=ocr_engine,
            ocr_language=ocr_language,
            ocr_timeout=ocr_timeout,
            timezone=timezone,
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings.load()


def reset_settings_state() -> None:
    """Reset cached settings and environment file state (for tests)."""
    global _ENV_FILE_LOADED
    _ENV_FILE_LOADED = False
    get_settings.cache_clear()


_ENV_FILE_LOADED = False


def _ensure_env_file_loaded() -> None:
    global _ENV_FILE_LOADED
    if _ENV_FILE_LOADED:
        return
    candidates = [Path.cwd() / ".env", Path(__file__).resolve().parent.parent / ".env"]
    loaded = False
    for env_path in candidates:
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
            loaded = True
    if not loaded:
        load_dotenv(override=False)
    _ENV_FILE_LOADED = True


__all__ = ["Settings", "get_settings", "reset_settings_state"]
