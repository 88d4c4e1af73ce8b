"""
Environment-driven settings.

Every value is read at call time so tests (and uvicorn reloads) see changes
to `os.environ` without re-importing anything.
"""

from __future__ import annotations

import os


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return url


def db_pool_min_size() -> int:
    return max(1, _env_int("DB_POOL_MIN", 1))


def db_pool_max_size() -> int:
    return max(db_pool_min_size(), _env_int("DB_POOL_MAX", 5))


def log_level() -> str:
    return _env_str("LOG_LEVEL", "INFO").upper()


def log_json() -> bool:
    return _env_bool("LOG_JSON", True)


def host() -> str:
    return _env_str("HOST", "0.0.0.0")


def port() -> int:
    return _env_int("PORT", 5565)


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def text_search_config() -> str:
    return _env_str("TEXT_SEARCH_CONFIG", "english")
