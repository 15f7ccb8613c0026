# app/db/helpers.py
"""
Query helpers used by the repositories.

Each helper borrows a pooled connection for a single statement and turns
psycopg failures into DatabaseError.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import psycopg

from app.db.pool import db_pool
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


@asynccontextmanager
async def _database_errors(operation: str, query: str) -> AsyncIterator[None]:
    try:
        yield
    except psycopg.Error as e:
        logger.error(
            "Database query failed",
            operation=operation,
            query=query[:100],
            error=str(e),
            error_type=type(e).__name__,
        )
        raise DatabaseError(
            f"Query failed: {e}",
            operation=operation,
            recoverable=isinstance(e, psycopg.OperationalError),
        ) from e


async def fetch_all(query: str, params: tuple = ()) -> list[dict[str, Any]]:
    """Run a SELECT and return every row as a dict."""
    async with _database_errors("fetch_all", query):
        async with db_pool.connection() as conn:
            cursor = await conn.execute(query, params)
            return await cursor.fetchall()


async def execute_query(query: str, params: tuple = ()) -> int:
    """Run a write statement and return the affected row count."""
    async with _database_errors("execute", query):
        async with db_pool.connection() as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount
