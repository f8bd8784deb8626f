from __future__ import annotations

import logging
from urllib.parse import urlsplit, urlunsplit

from .base import NotificationStore
from .postgres import PostgresStore
from .sqlite import MEMORY_PATH, SQLiteStore
from ..errors import UnsupportedStoreError


SQLITE_MEMORY_URL = "sqlite::memory:"
POSTGRES_PREFIXES = ("postgres://", "postgresql://")
SQLITE_PREFIXES = ("sqlite://", "sqlite:", "file://", "file:")


def connect_store(database_url: str) -> NotificationStore:
    """Build the store backend for a connection string.

    No connection is opened here; call ``initialize()`` on the result.
    """
    logger = logging.getLogger(__name__)
    url = database_url.strip()

    if url.startswith(POSTGRES_PREFIXES):
        logger.debug("Using postgres store")
        return PostgresStore(url)

    if url == SQLITE_MEMORY_URL or url.startswith(SQLITE_PREFIXES):
        path = sqlite_path(url)
        logger.debug("Using sqlite store at %s", path)
        return SQLiteStore(path)

    raise UnsupportedStoreError(
        "unsupported DATABASE_URL scheme, use sqlite://, sqlite::memory: or postgres://"
    )


def sqlite_path(database_url: str) -> str:
    if database_url == SQLITE_MEMORY_URL:
        return MEMORY_PATH
    for prefix in SQLITE_PREFIXES:
        if database_url.startswith(prefix):
            raw_path = database_url[len(prefix):]
            break
    else:
        raise UnsupportedStoreError(f"not a sqlite connection string: {database_url}")

    raw_path = raw_path.split("?", 1)[0]
    if not raw_path or raw_path == MEMORY_PATH:
        return MEMORY_PATH
    return raw_path


def redact_url(database_url: str) -> str:
    """Hide the password of a connection string for logging."""
    parts = urlsplit(database_url)
    if not parts.password:
        return database_url
    netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
    return urlunsplit(parts._replace(netloc=netloc))
