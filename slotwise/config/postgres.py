"""
slotwise.config.postgres – PostgreSQL connection config (dataclass + validators).

Env vars: DATABASE_URL, DB_POOL_SIZE, DB_MAX_OVERFLOW, DB_POOL_TIMEOUT,
DB_POOL_RECYCLE, DB_ECHO, DB_APPLICATION_NAME.
"""
from __future__ import annotations

from dataclasses import dataclass

from slotwise.config._env import env_bool, env_int, env_str, require_int

_URL_PREFIXES = ("postgresql://", "postgres://", "postgresql+asyncpg://")


def _validate_url(url: str) -> str:
    url = (url or "").strip()
    if not url:
        raise ValueError("DATABASE_URL is required and must be non-empty")
    if not url.startswith(_URL_PREFIXES):
        raise ValueError(
            "DATABASE_URL must start with postgresql://, postgres:// or postgresql+asyncpg://"
        )
    return url


@dataclass(frozen=True)
class PostgresConfig:
    """
    PostgreSQL connection and pool configuration, validated on construction.
    """

    url: str
    """DSN; converted to postgresql+asyncpg in the engine."""

    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    """Seconds to wait for a pooled connection."""

    pool_recycle: int = 1800
    echo: bool = False
    application_name: str = "slotwise"

    def __post_init__(self) -> None:
        _validate_url(self.url)
        require_int(self.pool_size, "pool_size")
        require_int(self.max_overflow, "max_overflow", min_val=0)
        require_int(self.pool_timeout, "pool_timeout")
        require_int(self.pool_recycle, "pool_recycle")
        if not isinstance(self.echo, bool):
            raise ValueError("echo must be a boolean")
        if not self.application_name or not self.application_name.strip():
            raise ValueError("application_name must be a non-empty string")

    @classmethod
    def from_env(cls, **overrides: object) -> PostgresConfig:
        """
        Build config from environment variables. Keyword overrides win over env.

        Env:
            DATABASE_URL          – default postgresql://localhost/slotwise
            DB_POOL_SIZE          – default 10
            DB_MAX_OVERFLOW       – default 20
            DB_POOL_TIMEOUT       – default 30
            DB_POOL_RECYCLE       – default 1800
            DB_ECHO               – "1" / "true" / "yes" → True
            DB_APPLICATION_NAME   – default slotwise
        """
        return cls(
            url=_validate_url(env_str(overrides, "url", "DATABASE_URL", "postgresql://localhost/slotwise")),
            pool_size=env_int(overrides, "pool_size", "DB_POOL_SIZE", 10),
            max_overflow=env_int(overrides, "max_overflow", "DB_MAX_OVERFLOW", 20),
            pool_timeout=env_int(overrides, "pool_timeout", "DB_POOL_TIMEOUT", 30),
            pool_recycle=env_int(overrides, "pool_recycle", "DB_POOL_RECYCLE", 1800),
            echo=env_bool(overrides, "echo", "DB_ECHO", False),
            application_name=env_str(overrides, "application_name", "DB_APPLICATION_NAME", "slotwise"),
        )


def load_postgres_config(**overrides: object) -> PostgresConfig:
    """Load and validate PostgreSQL config from environment (with optional overrides)."""
    return PostgresConfig.from_env(**overrides)
