"""Environment-backed settings for the ledger API.

Values are read on every call so tests can monkeypatch the environment.
A `.env` file is only honoured in dev/local environments.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


LOCAL_ENVIRONMENTS = frozenset({"dev", "local"})
LOCAL_UI_ORIGINS = ("http://localhost:5173", "http://localhost:3000")
DEFAULT_TRANSACTIONS_TABLE = "transactions"
DEFAULT_SUPABASE_PAGE_SIZE = 1000


def _normalized_env_name(raw: str | None) -> str:
    return (raw or "").strip().lower() or "dev"


if _normalized_env_name(os.getenv("APP_ENV")) in LOCAL_ENVIRONMENTS:
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def _clean(name: str) -> str | None:
    value = (get_env(name) or "").strip()
    return value or None


def app_env() -> str:
    """Return the current application environment, lower-cased."""
    return _normalized_env_name(get_env("APP_ENV"))


def is_local_env() -> bool:
    return app_env() in LOCAL_ENVIRONMENTS


def cors_allow_origins() -> list[str]:
    """Return allowed browser origins.

    Explicit `CORS_ALLOW_ORIGINS` (comma separated) wins; local environments
    fall back to the dev UI servers, other environments to `UI_ORIGIN`.
    """
    explicit = [origin.strip() for origin in (get_env("CORS_ALLOW_ORIGINS") or "").split(",")]
    explicit = [origin for origin in explicit if origin]
    if explicit:
        return explicit

    if is_local_env():
        return list(LOCAL_UI_ORIGINS)

    ui_origin = _clean("UI_ORIGIN")
    if ui_origin is not None:
        return [ui_origin]

    logger.warning("cors_allow_origins_empty app_env=%s", app_env())
    return []


def supabase_url() -> str | None:
    return _clean("SUPABASE_URL")


def supabase_service_role_key() -> str | None:
    return _clean("SUPABASE_SERVICE_ROLE_KEY")


def supabase_anon_key() -> str | None:
    return _clean("SUPABASE_ANON_KEY")


def transactions_table() -> str:
    """Return the PostgREST table holding transactions."""
    return _clean("SUPABASE_TRANSACTIONS_TABLE") or DEFAULT_TRANSACTIONS_TABLE


def supabase_page_size() -> int:
    """Return how many rows summary scans fetch per request.

    Keep it at or below the PostgREST `db-max-rows` setting of the project.
    """
    raw_value = _clean("SUPABASE_PAGE_SIZE")
    if raw_value is None:
        return DEFAULT_SUPABASE_PAGE_SIZE
    try:
        page_size = int(raw_value)
    except ValueError:
        logger.warning("supabase_page_size_invalid value=%s", raw_value)
        return DEFAULT_SUPABASE_PAGE_SIZE
    if page_size < 1:
        logger.warning("supabase_page_size_invalid value=%s", raw_value)
        return DEFAULT_SUPABASE_PAGE_SIZE
    return page_size
