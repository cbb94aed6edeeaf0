from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_DATA_URL = (
    "https://docs.google.com/spreadsheets/d/e/"
    "2PACX-1vQNHi2Kt0fVGk3jfqhtt3iIOsKE7U8dSzWAQ7EqKocgLBGvRW72zrh5y6UjEAHbJexCZk6AbjRT5tP2"
    "/pub?gid=0&single=true&output=csv"
)
DEFAULT_HTTP_TIMEOUT = 30.0
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True)
class Settings:
    data_url: str = DEFAULT_DATA_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_GEMINI_MODEL


def _as_timeout(value: Optional[str]) -> float:
    if not value:
        return DEFAULT_HTTP_TIMEOUT
    try:
        out = float(value)
    except ValueError:
        return DEFAULT_HTTP_TIMEOUT
    return out if out > 0 else DEFAULT_HTTP_TIMEOUT


def load_settings() -> Settings:
    """Read settings from the environment (and a local `.env`, if present)."""
    load_dotenv()
    api_key = (os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "").strip()
    return Settings(
        data_url=(os.getenv("ECOPRINT_DATA_URL") or "").strip() or DEFAULT_DATA_URL,
        http_timeout=_as_timeout(os.getenv("ECOPRINT_HTTP_TIMEOUT")),
        gemini_api_key=api_key or None,
        gemini_model=(os.getenv("ECOPRINT_GEMINI_MODEL") or "").strip() or DEFAULT_GEMINI_MODEL,
    )
