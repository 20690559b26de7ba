"""Data-access facade over the users and orders tables."""

from __future__ import annotations
from typing import Any, List, Optional
import logging

from .models import ORDER_COLUMNS, InsertOrder, InsertUser, Order, User


logger = logging.getLogger(__name__)

# Range of a Postgres SERIAL column; ids outside it can never match a row
MAX_SERIAL_ID = 2**31 - 1

USER_COLUMNS = "id, username, password, created_at"


def _valid_id(record_id: int) -> bool:
    return 0 < record_id <= MAX_SERIAL_ID


class DatabaseStorage:
    """
    Thin repository over an asyncpg pool.

    Every method is a single statement; write methods return the stored row
    including the generated id and timestamp. Lookups return None when the
    record does not exist.
    """

    def __init__(self, pool: Any):
        self._pool = pool

    # --- User operations ---

    async def get_user(self, user_id: int) -> Optional[User]:
        if not _valid_id(user_id):
            return None
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE id = $1",
                user_id,
            )
        return User.model_validate(dict(row)) if row else None

    async def get_user_by_username(self, username: str) -> Optional[User]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {USER_COLUMNS} FROM users WHERE username = $1",
                username,
            )
        return User.model_validate(dict(row)) if row else None

    async def create_user(self, user: InsertUser) -> User:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO users (username, password)
                VALUES ($1, $2)
                RETURNING {USER_COLUMNS}
                """,
                user.username,
                user.password,
            )
        return User.model_validate(dict(row))

    # --- Order operations ---

    async def get_order(self, order_id: int) -> Optional[Order]:
        if not _valid_id(order_id):
            return None
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow("SELECT * FROM orders WHERE id = $1", order_id)
        return Order.model_validate(dict(row)) if row else None

    async def get_all_orders(self) -> List[Order]:
        """All orders, oldest first."""
        async with self._pool.acquire() as conn:
            rows = await conn.fetch("SELECT * FROM orders ORDER BY created_at, id")
        return [Order.model_validate(dict(row)) for row in rows]

    async def create_order(self, order: InsertOrder) -> Order:
        values = order.model_dump()
        # NULL would bypass the column default
        if values["payment_complete"] is None:
            values["payment_complete"] = False
        placeholders = ", ".join(f"${i}" for i in range(1, len(ORDER_COLUMNS) + 1))
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO orders ({", ".join(ORDER_COLUMNS)})
                VALUES ({placeholders})
                RETURNING *
                """,
                *(values[column] for column in ORDER_COLUMNS),
            )
        logger.info(f"Created order {row['id']}")
        return Order.model_validate(dict(row))

    async def update_order_payment(self, order_id: int, payment_complete: bool) -> Optional[Order]:
        if not _valid_id(order_id):
            return None
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE orders
                SET payment_complete = $2
                WHERE id = $1
                RETURNING *
                """,
                order_id,
                payment_complete,
            )
        return Order.model_validate(dict(row)) if row else None


# Global storage instance (installed on startup)
_storage: Optional[DatabaseStorage] = None


def init_storage(pool: Any) -> DatabaseStorage:
    """Install the global storage instance bound to *pool*."""
    global _storage
    _storage = DatabaseStorage(pool)
    return _storage


def reset_storage() -> None:
    global _storage
    _storage = None


def get_storage() -> DatabaseStorage:
    """Get global storage instance."""
    if _storage is None:
        raise RuntimeError("Storage not initialized. Call init_storage() first.")
    return _storage
