from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Notification:
    id: str
    unread: bool
    updated_at: datetime
    repository: str | None
    subject_type: str
    subject_title: str
    reason: str
    raw_data: dict = field(default_factory=dict, compare=False, repr=False)


class BaseFeed(ABC):
    @abstractmethod
    async def fetch_since(self, since: datetime | None = None) -> list[Notification]:
        """Fetch every notification updated at or after ``since``. If None, fetch all available."""
        raise NotImplementedError
