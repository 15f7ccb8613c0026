# app/db/pool.py
"""
Connection pool for the background worker.

The worker opens the pool once before its job and closes it on the way out;
session settings (UTC, autocommit, dict rows) are fixed at connect time.
"""

from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class WorkerConnectionPool:
    """Lazily opened psycopg pool shared by the repositories of one worker run."""

    def __init__(self, conninfo: str | None = None):
        self._conninfo = conninfo
        self._pool: AsyncConnectionPool | None = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def _connection_kwargs(self) -> dict:
        return {
            "autocommit": True,
            "row_factory": dict_row,
            "application_name": f"volunteer-jobs-{settings.environment}",
            "options": "-c TimeZone=UTC -c statement_timeout=60000",
        }

    async def open(self) -> None:
        """Open the pool and run one round trip so a bad DATABASE_URL fails fast."""
        if self._pool is not None:
            return

        sizing = settings.get_db_pool_config()
        pool = AsyncConnectionPool(
            conninfo=self._conninfo or settings.DATABASE_URL,
            kwargs=self._connection_kwargs(),
            open=False,
            **sizing,
        )
        await pool.open(wait=True)

        try:
            async with pool.connection() as conn:
                await conn.execute("SELECT 1")
        except Exception:
            await pool.close()
            raise

        self._pool = pool
        logger.info("Database pool opened", min_size=sizing["min_size"], max_size=sizing["max_size"])

    async def close(self) -> None:
        if self._pool is None:
            return

        pool, self._pool = self._pool, None
        await pool.close()
        logger.info("Database pool closed")

    def connection(self):
        """
        Borrow a connection for the duration of an ``async with`` block.

        Raises:
            RuntimeError: If the pool has not been opened
        """
        if self._pool is None:
            raise RuntimeError("Database pool is not open. Call open() first.")
        return self._pool.connection()


# Global pool instance
db_pool = WorkerConnectionPool()
