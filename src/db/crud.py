# src/db/crud.py
# async string key-value access, the durable side of the stores
from __future__ import annotations

import sqlite3
from datetime import datetime
from typing import List, Optional

from db.database import connect
from utils.errors import PersistenceError


async def get_item(key: str) -> Optional[str]:
    """Return the stored text for `key`, or None when the key was never written."""
    try:
        async with connect() as conn:
            cur = await conn.execute("SELECT value FROM kv_store WHERE key = ?;", (key,))
            row = await cur.fetchone()
            await cur.close()
    except (sqlite3.Error, OSError) as e:
        raise PersistenceError(f"Failed to read '{key}': {e}") from e
    return row[0] if row else None


async def set_item(key: str, value: str) -> None:
    """Insert or overwrite `key`. The last completed write wins."""
    if not isinstance(value, str):
        raise PersistenceError(f"Value for '{key}' must be text, got {type(value).__name__}.")
    try:
        async with connect() as conn:
            await conn.execute(
                """
                INSERT INTO kv_store(key, value, updated_at) VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at;
                """,
                (key, value, datetime.now().isoformat()),
            )
            await conn.commit()
    except (sqlite3.Error, OSError) as e:
        raise PersistenceError(f"Failed to write '{key}': {e}") from e


async def remove_item(key: str) -> bool:
    """Delete `key`. Returns True if a row was removed."""
    try:
        async with connect() as conn:
            cur = await conn.execute("DELETE FROM kv_store WHERE key = ?;", (key,))
            removed = cur.rowcount > 0
            await cur.close()
            await conn.commit()
    except (sqlite3.Error, OSError) as e:
        raise PersistenceError(f"Failed to remove '{key}': {e}") from e
    return removed


async def all_keys() -> List[str]:
    try:
        async with connect() as conn:
            cur = await conn.execute("SELECT key FROM kv_store ORDER BY key;")
            rows = await cur.fetchall()
            await cur.close()
    except (sqlite3.Error, OSError) as e:
        raise PersistenceError(f"Failed to list keys: {e}") from e
    return [row[0] for row in rows]
