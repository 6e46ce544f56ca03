"""asyncpg pool shared by the services, plus schema migrations.

The pool is created once in the app lifespan. Services call `get_pool()` per
operation and acquire a connection only for the statements they run.
"""

from pathlib import Path
from typing import Optional

import asyncpg
import structlog

from vidtube.config import get_settings

logger = structlog.get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations"

_pool: Optional[asyncpg.Pool] = None


async def get_pool() -> asyncpg.Pool:
    """Return the pool opened by `init_database`.

    Raises:
        RuntimeError: If called before startup or after shutdown
    """
    if _pool is None:
        raise RuntimeError("Database pool is not open; init_database() runs at startup")
    return _pool


async def init_database() -> asyncpg.Pool:
    """Open the pool with the sizes from Settings. Safe to call twice."""
    global _pool

    if _pool is not None:
        return _pool

    settings = get_settings()
    try:
        _pool = await asyncpg.create_pool(
            settings.postgres_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=settings.db_command_timeout,
        )
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.error("database_pool_open_failed", error=str(e))
        raise

    logger.info(
        "database_pool_opened",
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
    )
    return _pool


async def close_database() -> None:
    global _pool

    if _pool is None:
        return
    await _pool.close()
    _pool = None
    logger.info("database_pool_closed")


async def run_migrations(migrations_dir: Path = MIGRATIONS_DIR) -> list[str]:
    """Apply every `*.sql` file in filename order, each in its own transaction.

    The files use `IF NOT EXISTS`, so running them on every startup is a no-op
    once the schema is in place.

    Returns:
        Names of the files applied
    """
    files = sorted(migrations_dir.glob("*.sql"))
    if not files:
        logger.warning("migrations_missing", path=str(migrations_dir))
        return []

    pool = await get_pool()
    applied = []
    async with pool.acquire() as conn:
        for path in files:
            try:
                async with conn.transaction():
                    await conn.execute(path.read_text(encoding="utf-8"))
            except asyncpg.PostgresError as e:
                logger.error("migration_failed", file=path.name, error=str(e))
                raise
            applied.append(path.name)

    logger.info("migrations_applied", files=applied)
    return applied


async def health_check() -> bool:
    """Run `SELECT 1`; False if the pool is closed or the query fails."""
    try:
        pool = await get_pool()
        async with pool.acquire() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except (RuntimeError, OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.warning("database_unhealthy", error=str(e))
        return False
