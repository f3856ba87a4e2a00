"""Supabase Postgres access with RLS context.

Every request gets a connection where ``app.current_user_id`` is set for the
current transaction only, ensuring that Postgres Row-Level Security policies on the
menstrual tables see the correct identity.

Uses ``asyncpg`` for direct database access; the Supabase Python client
cannot set transaction-local session variables.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

import asyncpg

from cyclecare.config import Settings, get_settings

logger = logging.getLogger("cyclecare.db")

# Module-level connection pool — initialized once at app startup
_pool: asyncpg.Pool | None = None


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.supabase_db_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size, s.db_pool_max_size,
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized — call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection(
    user_id: uuid.UUID | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection inside a transaction with RLS session variables set.

    Usage::

        async with get_connection(user_id=user.user_id) as conn:
            rows = await conn.fetch("SELECT * FROM menstrual_cycles WHERE user_id = $1", user.user_id)

    The ``set_config(..., true)`` call is scoped to the current transaction so it
    disappears automatically when the connection is returned to the pool.
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            if user_id:
                await conn.execute(
                    "SELECT set_config('app.current_user_id', $1, true)", str(user_id)
                )
            yield conn


async def execute(query: str, *args: Any, user_id: uuid.UUID | None = None) -> str:
    """Execute a single statement with RLS context and return status."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.execute(query, *args)


async def fetch(
    query: str, *args: Any, user_id: uuid.UUID | None = None
) -> list[asyncpg.Record]:
    """Fetch rows with RLS context."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.fetch(query, *args)


async def fetchrow(
    query: str, *args: Any, user_id: uuid.UUID | None = None
) -> asyncpg.Record | None:
    """Fetch a single row with RLS context."""
    async with get_connection(user_id=user_id) as conn:
        return await conn.fetchrow(query, *args)


def build_upsert_query(
    table: str,
    columns: list[str],
    conflict_columns: list[str],
    update_columns: list[str] | None = None,
) -> str:
    """Build a PostgreSQL ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING *`` query.

    Generates idempotent writes — safe to call multiple times with the same
    data.  On conflict, updates the non-key columns.

    Args:
        table:            Target table name.
        columns:          All columns to insert.
        conflict_columns: Columns that define the UNIQUE constraint.
        update_columns:   Columns to update on conflict (defaults to non-key columns).

    Returns:
        Parameterized SQL string.
    """
    if update_columns is None:
        update_columns = [c for c in columns if c not in conflict_columns]

    placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
    col_list = ", ".join(columns)
    conflict_target = ", ".join(conflict_columns)

    if update_columns:
        update_set = ", ".join(f"{col} = EXCLUDED.{col}" for col in update_columns)
        update_set += ", updated_at = NOW()"
        do_clause = f"DO UPDATE SET {update_set}"
    else:
        do_clause = "DO NOTHING"

    return (
        f"INSERT INTO {table} ({col_list}) "
        f"VALUES ({placeholders}) "
        f"ON CONFLICT ({conflict_target}) {do_clause} "
        f"RETURNING *"
    )
