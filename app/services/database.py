"""PostgreSQL storage for cached research results using asyncpg."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

import asyncpg
from loguru import logger

from app.config import settings


# Connection pool
_pool: asyncpg.Pool | None = None

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS research_cache (
    key TEXT PRIMARY KEY,
    value JSONB NOT NULL,
    stored_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    expires_at TIMESTAMPTZ
);
CREATE INDEX IF NOT EXISTS research_cache_key_prefix_idx
    ON research_cache (key text_pattern_ops);
"""


def _db_available() -> bool:
    """Check if database is configured."""
    return bool(settings.database_url)


async def _get_pool() -> asyncpg.Pool:
    """Get or create the database connection pool."""
    global _pool
    if not _db_available():
        raise RuntimeError("Database not configured. Set DATABASE_URL in .env")
    if _pool is None:
        pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=1,
            max_size=10,
        )
        try:
            async with pool.acquire() as conn:
                await conn.execute(SCHEMA_SQL)
        except BaseException:
            await pool.close()
            raise
        _pool = pool
    return _pool


async def close_pool() -> None:
    """Close the database connection pool."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def ping() -> bool:
    """Return True when the database answers a trivial query."""
    if not _db_available():
        return False
    try:
        pool = await _get_pool()
        async with pool.acquire() as conn:
            await conn.fetchval("SELECT 1")
    except Exception as e:
        # Bad DSNs, refused connections and connect timeouts all mean "not available".
        logger.warning(f"Database ping failed: {e.__class__.__name__}: {e}")
        return False
    return True


def _decode_row(record: asyncpg.Record) -> dict[str, Any]:
    row = dict(record)
    value = row.get("value")
    if isinstance(value, str):
        row["value"] = json.loads(value)
    return row


# --- Research cache ---

async def get_cached_result(key: str) -> dict[str, Any] | None:
    """Get a live cache row by exact key."""
    pool = await _get_pool()
    async with pool.acquire() as conn:
        result = await conn.fetchrow(
            """
            SELECT key, value, stored_at
            FROM research_cache
            WHERE key = $1
              AND (expires_at IS NULL OR expires_at > now())
            """,
            key,
        )
        return _decode_row(result) if result else None


async def upsert_cached_result(key: str, value: Any, expires_at: datetime | None) -> None:
    """Insert or fully replace a cache row."""
    pool = await _get_pool()
    async with pool.acquire() as conn:
        await conn.execute(
            """
            INSERT INTO research_cache (key, value, stored_at, expires_at)
            VALUES ($1, $2::jsonb, now(), $3)
            ON CONFLICT (key) DO UPDATE
            SET value = EXCLUDED.value,
                stored_at = EXCLUDED.stored_at,
                expires_at = EXCLUDED.expires_at
            """,
            key,
            json.dumps(value),
            expires_at,
        )


async def scan_cached_results(prefix: str) -> list[dict[str, Any]]:
    """Get live cache rows whose key starts with prefix, ordered by key."""
    pool = await _get_pool()
    async with pool.acquire() as conn:
        results = await conn.fetch(
            """
            SELECT key, value, stored_at
            FROM research_cache
            WHERE left(key, length($1)) = $1
              AND (expires_at IS NULL OR expires_at > now())
            ORDER BY key
            """,
            prefix,
        )
        return [_decode_row(r) for r in results]
