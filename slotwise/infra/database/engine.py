"""
slotwise.infra.database.engine – process-wide async engine and sessions.

The engine and session factory are created lazily from PostgresConfig (env
when not given) and reused until close_engine(). session_scope() is the unit
of work the services run in: one transaction, committed on success.
"""
from __future__ import annotations

import logging
import re
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any, Dict, Optional
from urllib.parse import urlsplit, urlunsplit

import asyncpg
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import slotwise.infra.database.models  # noqa: F401  (fills Base.metadata)
from slotwise.infra.database.models.base import Base

if TYPE_CHECKING:
    from slotwise.config import PostgresConfig

logger = logging.getLogger(__name__)

_SAFE_DBNAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_ASYNC_SCHEME = "postgresql+asyncpg"

_engine: Optional[AsyncEngine] = None
_sessions: Optional[async_sessionmaker[AsyncSession]] = None


def _config_or_env(config: Optional["PostgresConfig"]) -> "PostgresConfig":
    if config is not None:
        return config
    from slotwise.config import load_postgres_config

    return load_postgres_config()


def to_async_url(url: str) -> str:
    """postgres:// and postgresql:// DSNs rewritten for the asyncpg driver."""
    scheme, sep, rest = url.partition("://")
    if scheme in ("postgres", "postgresql"):
        return f"{_ASYNC_SCHEME}{sep}{rest}"
    return url


def engine_options(config: "PostgresConfig", *, echo: Optional[bool] = None, use_null_pool: bool = False) -> Dict[str, Any]:
    options: Dict[str, Any] = {
        "echo": config.echo if echo is None else echo,
        "connect_args": {"server_settings": {"application_name": config.application_name}},
    }
    if use_null_pool:
        options["poolclass"] = NullPool
    else:
        options.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=True,
        )
    return options


def build_engine(
    config: Optional["PostgresConfig"] = None,
    *,
    echo: Optional[bool] = None,
    use_null_pool: bool = False,
) -> AsyncEngine:
    """Return the shared engine, creating it on first call (NullPool for tests and scripts)."""
    global _engine
    if _engine is None:
        config = _config_or_env(config)
        _engine = create_async_engine(
            to_async_url(config.url), **engine_options(config, echo=echo, use_null_pool=use_null_pool)
        )
        logger.info("AsyncEngine ready (application_name=%s, null_pool=%s)", config.application_name, use_null_pool)
    return _engine


def build_session_factory(engine: Optional[AsyncEngine] = None) -> async_sessionmaker[AsyncSession]:
    global _sessions
    if _sessions is None:
        _sessions = async_sessionmaker(engine or build_engine(), expire_on_commit=False, autoflush=False)
    return _sessions


@asynccontextmanager
async def session_scope(config: Optional["PostgresConfig"] = None) -> AsyncIterator[AsyncSession]:
    """One transaction: commit when the block exits cleanly, roll back and re-raise otherwise."""
    factory = build_session_factory(build_engine(config))
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()


async def get_db(config: Optional["PostgresConfig"] = None) -> AsyncGenerator[AsyncSession, None]:
    """Generator form of session_scope for dependency-injection frameworks."""
    async with session_scope(config) as session:
        yield session


async def ensure_database_exists(config: Optional["PostgresConfig"] = None) -> bool:
    """Create the configured database through the "postgres" maintenance DB. True when created."""
    config = _config_or_env(config)
    parts = urlsplit(config.url.replace(f"{_ASYNC_SCHEME}://", "postgresql://", 1))
    dbname = parts.path.lstrip("/") or "postgres"
    if dbname == "postgres" or not _SAFE_DBNAME.match(dbname):
        logger.debug("ensure_database_exists: nothing to do for %r", dbname)
        return False
    try:
        conn = await asyncpg.connect(urlunsplit(parts._replace(path="/postgres")))
    except (OSError, asyncpg.PostgresError) as exc:
        logger.warning("ensure_database_exists: maintenance DB unreachable: %s", exc)
        return False
    try:
        if await conn.fetchval("SELECT 1 FROM pg_database WHERE datname = $1", dbname):
            return False
        await conn.execute(f'CREATE DATABASE "{dbname}"')
        logger.info("Created database %s", dbname)
        return True
    finally:
        await conn.close()


async def init_db(
    config: Optional["PostgresConfig"] = None,
    *,
    drop_all: bool = False,
    create_database: bool = False,
) -> None:
    """create_all() for credentials, schedules, bookings, selections and slot holds (dev/test)."""
    config = _config_or_env(config)
    if create_database:
        await ensure_database_exists(config)
    async with build_engine(config).begin() as conn:
        if drop_all:
            logger.warning("init_db: dropping every slotwise table")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Tables ready: %s", ", ".join(sorted(Base.metadata.tables)))


async def close_engine() -> None:
    """Dispose the pool and forget the cached engine and session factory."""
    global _engine, _sessions
    if _engine is None:
        return
    await _engine.dispose()
    _engine, _sessions = None, None
    logger.info("AsyncEngine disposed")
