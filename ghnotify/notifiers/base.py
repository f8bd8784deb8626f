from __future__ import annotations

from abc import ABC, abstractmethod


class BaseNotifier(ABC):
    @abstractmethod
    async def send(self, text: str) -> None:
        """Deliver a text message. Raises SendError on failure."""
        raise NotImplementedError
