"""Durable key/value store standing in for browser local storage."""

import asyncio
import json
from pathlib import Path
from typing import Any, Protocol

import aiosqlite

from pm_sync.utils.logging import get_logger

logger = get_logger(__name__)

AUTH_TOKEN_KEY = "authToken"
CALENDAR_EVENTS_KEY = "calendarEvents"


class KeyValueStore(Protocol):
    """Async string store interface shared by the SQLite and in-memory stores."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...

    async def get_json(self, key: str) -> Any: ...

    async def set_json(self, key: str, value: Any) -> None: ...

    async def close(self) -> None: ...


class LocalStore:
    """SQLite-backed local storage.

    Holds the small amount of durable client state: the bearer token and the
    calendar event cache. Values are strings; JSON helpers serialize on top.
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize local store.

        Args:
            path: Path to SQLite database file
        """
        self.path = Path(path)
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    async def initialize(self) -> aiosqlite.Connection:
        """Open the database and create the table.

        Returns:
            The open connection
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        async with self._lock:
            if self._db is not None:
                return self._db
            db = await aiosqlite.connect(str(self.path))
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await db.commit()
            self._db = db
            logger.info("local_store_initialized", path=str(self.path))
            return db

    async def _connection(self) -> aiosqlite.Connection:
        if self._db is not None:
            return self._db
        return await self.initialize()

    async def get(self, key: str) -> str | None:
        """Read a value.

        Args:
            key: Storage key

        Returns:
            Stored string or None if absent
        """
        db = await self._connection()
        async with self._lock:
            cursor = await db.execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = await cursor.fetchone()
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        """Write a value, replacing any existing one."""
        db = await self._connection()
        async with self._lock:
            await db.execute(
                """
                INSERT OR REPLACE INTO kv (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                """,
                (key, value),
            )
            await db.commit()

    async def remove(self, key: str) -> None:
        """Delete a value. Missing keys are ignored."""
        db = await self._connection()
        async with self._lock:
            await db.execute("DELETE FROM kv WHERE key = ?", (key,))
            await db.commit()

    async def get_json(self, key: str) -> Any:
        """Read and decode a JSON value.

        Returns:
            Decoded value, or None when absent or not valid JSON
        """
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("local_store_decode_failed", key=key, error=str(e))
            return None

    async def set_json(self, key: str, value: Any) -> None:
        """Encode and write a JSON value. Dates are written as ISO strings."""
        await self.set(key, json.dumps(value, default=_json_default))

    async def close(self) -> None:
        """Close the database connection."""
        async with self._lock:
            if self._db is not None:
                await self._db.close()
                self._db = None
                logger.info("local_store_closed")


class MemoryStore:
    """Dict-backed store with the same interface, for ephemeral sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> str | None:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)

    async def get_json(self, key: str) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None

    async def set_json(self, key: str, value: Any) -> None:
        self._data[key] = json.dumps(value, default=_json_default)

    async def close(self) -> None:
        pass


def _json_default(value: Any) -> Any:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
