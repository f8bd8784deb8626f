from .base import NotificationStore
from .factory import connect_store, redact_url
from .postgres import PostgresStore
from .sqlite import SQLiteStore

__all__ = [
    "NotificationStore",
    "PostgresStore",
    "SQLiteStore",
    "connect_store",
    "redact_url",
]
