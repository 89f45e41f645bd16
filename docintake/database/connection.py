from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg_pool import AsyncConnectionPool

from docintake.config.settings import Settings

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Connection drops, pool waits and statement timeouts; safe to retry.
TRANSIENT_DB_ERRORS: tuple[type[Exception], ...] = (psycopg.OperationalError,)

_pool: AsyncConnectionPool | None = None


def _conninfo(settings: Settings) -> str:
    return (
        f"host={settings.db_host} "
        f"port={settings.db_port} "
        f"dbname={settings.db_database} "
        f"user={settings.db_username} "
        f"password={settings.db_password} "
        f"connect_timeout={settings.db_connect_timeout_seconds} "
        f"options='-c statement_timeout={settings.db_statement_timeout_seconds * 1000}'"
    )


async def init_pool(settings: Settings) -> None:
    """Open the global connection pool from settings."""
    global _pool  # noqa: PLW0603
    pool = AsyncConnectionPool(
        _conninfo(settings),
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        timeout=settings.db_pool_timeout_seconds,
        open=False,
    )
    await pool.open(wait=True, timeout=10.0)
    _pool = pool


async def close_pool() -> None:
    """Close the global connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_connection() -> AsyncGenerator[psycopg.AsyncConnection[Any], None]:
    """Yield a connection from the pool. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    async with _pool.connection() as conn:
        yield conn
