"""
Database connection pool for the checkout server.
Uses asyncpg for async Postgres access.
"""

import json
import logging
from typing import Any

import asyncpg

from .models import SCHEMA_SQL


logger = logging.getLogger(__name__)


async def _init_connection(conn) -> None:
    """Decode json/jsonb columns into Python objects on every pooled connection."""
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name,
            encoder=json.dumps,
            decoder=json.loads,
            schema="pg_catalog",
        )


async def create_pool(database_url: str, min_size: int = 2, max_size: int = 10) -> Any:
    """Create the connection pool. Call during app startup."""
    return await asyncpg.create_pool(
        database_url,
        min_size=min_size,
        max_size=max_size,
        init=_init_connection,
    )


async def close_pool(pool: Any) -> None:
    """Close the connection pool. Call during app shutdown."""
    if pool is not None:
        await pool.close()


async def create_tables(pool: Any) -> None:
    """Create the users and orders tables if they don't exist yet."""
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA_SQL)
    logger.info("[startup] Tables ensured: users, orders")
