from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import aiosqlite

from .base import SENT_TABLE, NotificationStore
from ..errors import StoreInitError, StoreQueryError, StoreWriteError


MEMORY_PATH = ":memory:"


class SQLiteStore(NotificationStore):
    """Dedup store backed by a single aiosqlite connection.

    One connection is held for the lifetime of the store so that in-memory
    databases survive between calls; the lock serializes access to it.
    """

    def __init__(self, path: str) -> None:
        self._path = path
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    @property
    def path(self) -> str:
        return self._path

    async def initialize(self) -> None:
        try:
            ensure_parent_dir(self._path)
            if self._db is None:
                self._db = await aiosqlite.connect(self._path)
            async with self._lock:
                await self._db.execute(
                    f"""
                    CREATE TABLE IF NOT EXISTS {SENT_TABLE} (
                        id TEXT PRIMARY KEY,
                        sent_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                    )
                    """
                )
                await self._db.commit()
        except (OSError, aiosqlite.Error) as exc:
            raise StoreInitError(f"create {SENT_TABLE} table in sqlite ({self._path}): {exc}") from exc
        self._logger.debug("SQLite store ready at %s", self._path)

    async def is_sent(self, notification_id: str) -> bool:
        db = self._connection(StoreQueryError)
        try:
            async with self._lock:
                async with db.execute(
                    f"SELECT 1 FROM {SENT_TABLE} WHERE id = ? LIMIT 1", (notification_id,)
                ) as cursor:
                    row = await cursor.fetchone()
        except (aiosqlite.Error, ValueError) as exc:
            raise StoreQueryError(f"run sqlite dedupe query for {notification_id}: {exc}") from exc
        return row is not None

    async def mark_sent(self, notification_id: str) -> None:
        db = self._connection(StoreWriteError)
        async with self._lock:
            try:
                await db.execute(
                    f"INSERT OR IGNORE INTO {SENT_TABLE} (id) VALUES (?)", (notification_id,)
                )
                await db.commit()
            except (aiosqlite.Error, ValueError) as exc:
                await self._rollback(db)
                raise StoreWriteError(
                    f"mark notification as sent in sqlite: {notification_id}: {exc}"
                ) from exc

    async def _rollback(self, db: aiosqlite.Connection) -> None:
        # a failed commit leaves the insert pending on the shared connection
        try:
            await db.rollback()
        except (aiosqlite.Error, ValueError) as exc:
            self._logger.warning("SQLite rollback failed: %s", exc)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    def _connection(self, error_type: type[Exception]) -> aiosqlite.Connection:
        if self._db is None:
            raise error_type("sqlite store is not initialized")
        return self._db


def ensure_parent_dir(path: str) -> None:
    if path == MEMORY_PATH or not path:
        return
    parent = Path(path).parent
    if str(parent) in ("", "."):
        return
    parent.mkdir(parents=True, exist_ok=True)
