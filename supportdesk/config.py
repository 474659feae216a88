"""Environment-driven configuration for the support desk service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./supportdesk.db"


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def as_sqlalchemy_url(db_url: str) -> str:
    """Ensure Postgres URLs use the ``psycopg`` driver."""

    if db_url.startswith("postgresql+psycopg://"):
        return db_url
    if db_url.startswith("postgresql://"):
        return db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+psycopg://", 1)
    return db_url


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from environment variables."""

    database_url: str
    router_model: str
    agent_model: str
    reply_language: str | None
    app_env: str
    app_version: str
    cors_origins: list[str]
    rate_limit_window_seconds: int
    rate_limit_max_requests: int
    rate_limit_storage_uri: str
    history_limit: int

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"


def load_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""

    from .__version__ import __version__

    return Settings(
        database_url=as_sqlalchemy_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL)),
        router_model=os.getenv("ROUTER_MODEL", "gpt-4o-mini"),
        agent_model=os.getenv("AGENT_MODEL", "gpt-4o-mini"),
        reply_language=os.getenv("OPENAI_LANG") or None,
        app_env=os.getenv("APP_ENV", "production"),
        app_version=os.getenv("APP_VERSION", __version__),
        cors_origins=_split_csv(
            os.getenv("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000")
        ),
        rate_limit_window_seconds=int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60")),
        rate_limit_max_requests=int(os.getenv("RATE_LIMIT_MAX_REQUESTS", "20")),
        rate_limit_storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
        history_limit=int(os.getenv("HISTORY_LIMIT", "12")),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings; call :func:`reset_settings_cache` after env changes."""

    return load_settings()


def reset_settings_cache() -> None:
    get_settings.cache_clear()


__all__ = [
    "DEFAULT_DATABASE_URL",
    "Settings",
    "as_sqlalchemy_url",
    "get_settings",
    "load_settings",
    "reset_settings_cache",
]
