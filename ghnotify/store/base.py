from __future__ import annotations

from abc import ABC, abstractmethod


SENT_TABLE = "sent_notifications"


class NotificationStore(ABC):
    @abstractmethod
    async def initialize(self) -> None:
        """Create the backing table if it does not exist yet."""
        raise NotImplementedError

    @abstractmethod
    async def is_sent(self, notification_id: str) -> bool:
        """Return True if the notification was already forwarded."""
        raise NotImplementedError

    @abstractmethod
    async def mark_sent(self, notification_id: str) -> None:
        """Record the notification as forwarded. Recording twice is a no-op."""
        raise NotImplementedError

    async def close(self) -> None:
        return None
