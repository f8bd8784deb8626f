from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Sequence

from .errors import SendError
from .feeds.base import Notification
from .notifiers.base import BaseNotifier
from .notifiers.message import format_message
from .store.base import NotificationStore


@dataclass
class DispatchResult:
    forwarded: int
    failed: int
    max_updated_at: datetime | None


def latest_updated_at(notifications: Sequence[Notification]) -> datetime | None:
    if not notifications:
        return None
    return max(notification.updated_at for notification in notifications)


def order_for_delivery(notifications: Sequence[Notification]) -> list[Notification]:
    """Oldest first; equal timestamps keep their fetch order."""
    return sorted(notifications, key=lambda n: n.updated_at)


async def process_cycle(
    notifications: Sequence[Notification],
    store: NotificationStore,
    notifier: BaseNotifier,
    dry_run: bool = False,
) -> DispatchResult:
    """Forward every unread notification that has not been sent before.

    Send failures are logged and the item stays unmarked; the rest of the
    batch still goes out. Store errors propagate and abort the remaining batch.
    """
    logger = logging.getLogger(__name__)
    max_updated_at = latest_updated_at(notifications)

    forwarded = 0
    failed = 0
    for notification in order_for_delivery(notifications):
        if not notification.unread:
            continue
        if await store.is_sent(notification.id):
            logger.debug("Already forwarded %s", notification.id)
            continue

        message = format_message(notification)
        if dry_run:
            logger.info("[dry-run] Would forward %s:\n%s", notification.id, message)
            continue

        try:
            await notifier.send(message)
        except SendError as exc:
            logger.error("Send failed for %s: %s", notification.id, exc)
            failed += 1
            continue

        await store.mark_sent(notification.id)
        forwarded += 1

    return DispatchResult(forwarded=forwarded, failed=failed, max_updated_at=max_updated_at)
