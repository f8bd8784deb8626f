from __future__ import annotations

import asyncio
import logging

import asyncpg

from .base import SENT_TABLE, NotificationStore
from ..errors import StoreInitError, StoreQueryError, StoreWriteError


MAX_POOL_SIZE = 5
COMMAND_TIMEOUT_SECONDS = 15

_PG_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


class PostgresStore(NotificationStore):
    def __init__(self, database_url: str, max_pool_size: int = MAX_POOL_SIZE) -> None:
        self._database_url = database_url
        self._max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._logger = logging.getLogger(__name__)

    async def initialize(self) -> None:
        try:
            if self._pool is None:
                self._pool = await asyncpg.create_pool(
                    dsn=self._database_url,
                    min_size=1,
                    max_size=self._max_pool_size,
                    command_timeout=COMMAND_TIMEOUT_SECONDS,
                )
            await self._pool.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {SENT_TABLE} (
                    id TEXT PRIMARY KEY,
                    sent_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
        except _PG_ERRORS + (ValueError,) as exc:
            raise StoreInitError(f"create {SENT_TABLE} table in postgres: {exc}") from exc
        self._logger.debug("Postgres store ready (max_pool_size=%s)", self._max_pool_size)

    async def is_sent(self, notification_id: str) -> bool:
        pool = self._get_pool(StoreQueryError)
        try:
            exists = await pool.fetchval(
                f"SELECT 1 FROM {SENT_TABLE} WHERE id = $1 LIMIT 1", notification_id
            )
        except _PG_ERRORS as exc:
            raise StoreQueryError(f"run postgres dedupe query for {notification_id}: {exc}") from exc
        return exists is not None

    async def mark_sent(self, notification_id: str) -> None:
        pool = self._get_pool(StoreWriteError)
        try:
            await pool.execute(
                f"INSERT INTO {SENT_TABLE} (id) VALUES ($1) ON CONFLICT (id) DO NOTHING",
                notification_id,
            )
        except _PG_ERRORS as exc:
            raise StoreWriteError(f"mark notification as sent in postgres: {notification_id}: {exc}") from exc

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    def _get_pool(self, error_type: type[Exception]) -> asyncpg.Pool:
        if self._pool is None:
            raise error_type("postgres store is not initialized")
        return self._pool
