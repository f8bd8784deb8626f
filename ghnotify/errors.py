from __future__ import annotations


class GhnotifyError(Exception):
    """Base error for the daemon."""


class ConfigError(GhnotifyError):
    """Raised when configuration is missing or invalid."""


class StoreError(GhnotifyError):
    """Base error for dedup store failures."""


class StoreInitError(StoreError):
    """Raised when the store cannot be reached or its schema cannot be created."""


class UnsupportedStoreError(StoreInitError):
    """Raised when the connection string scheme is not recognized."""


class StoreQueryError(StoreError):
    """Raised when a membership lookup fails."""


class StoreWriteError(StoreError):
    """Raised when recording a sent notification fails."""


class FetchError(GhnotifyError):
    """Raised when a notifications page cannot be retrieved."""

    def __init__(self, message: str, page: int | None = None) -> None:
        super().__init__(message)
        self.page = page


class SendError(GhnotifyError):
    """Raised when the messaging sink rejects or fails to deliver a message."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
