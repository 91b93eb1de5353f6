"""Environment-driven settings."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:8000/api"
DEFAULT_FRONTEND_ORIGIN = "http://localhost:3000"
DEFAULT_DEBOUNCE_SECONDS = 3.0
DEFAULT_HTTP_TIMEOUT = 10.0


@dataclass(frozen=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    jwt_secret: Optional[str] = None
    frontend_origin: str = DEFAULT_FRONTEND_ORIGIN
    autosave_debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT
    log_level: str = "INFO"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment (and .env, if present)."""
    load_dotenv()
    return Settings(
        api_url=os.getenv("SCHEMA_API_URL", DEFAULT_API_URL).rstrip("/"),
        jwt_secret=os.getenv("JWT_SECRET") or None,
        frontend_origin=os.getenv("FRONTEND_ORIGIN", DEFAULT_FRONTEND_ORIGIN),
        autosave_debounce_seconds=_float_env("AUTOSAVE_DEBOUNCE_SECONDS", DEFAULT_DEBOUNCE_SECONDS),
        http_timeout_seconds=_float_env("HTTP_TIMEOUT_SECONDS", DEFAULT_HTTP_TIMEOUT),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
