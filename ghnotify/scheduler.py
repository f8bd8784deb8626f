from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from enum import Enum
import logging
from typing import Any, Awaitable

from .dispatcher import DispatchResult, process_cycle
from .errors import GhnotifyError
from .feeds.base import BaseFeed
from .notifiers.base import BaseNotifier
from .store.base import NotificationStore


WATERMARK_OVERLAP = timedelta(seconds=1)


class SchedulerState(Enum):
    IDLE = "idle"
    POLLING = "polling"
    SLEEPING = "sleeping"
    STOPPED = "stopped"


def next_watermark(current: datetime | None, max_seen: datetime | None) -> datetime | None:
    """Step back one second from the newest timestamp so boundary ties are re-fetched."""
    if max_seen is None:
        return current
    return max_seen - WATERMARK_OVERLAP


async def wait_first(work: Awaitable[Any], stop_event: asyncio.Event) -> tuple[bool, Any]:
    """Race ``work`` against ``stop_event``.

    Returns ``(True, result)`` when the work finishes first, otherwise cancels
    it and returns ``(False, None)``. Exceptions raised by the work propagate.
    """
    work_task = asyncio.ensure_future(work)
    stop_task = asyncio.ensure_future(stop_event.wait())
    try:
        done, _ = await asyncio.wait({work_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work_task.cancel()
        stop_task.cancel()
        raise

    if work_task in done:
        stop_task.cancel()
        return True, work_task.result()

    work_task.cancel()
    await asyncio.gather(work_task, return_exceptions=True)
    return False, None


class Scheduler:
    def __init__(
        self,
        feed: BaseFeed,
        notifier: BaseNotifier,
        store: NotificationStore,
        poll_interval_seconds: float,
        dry_run: bool = False,
    ) -> None:
        self._feed = feed
        self._notifier = notifier
        self._store = store
        self._poll_interval = poll_interval_seconds
        self._dry_run = dry_run
        self._state = SchedulerState.IDLE
        self._logger = logging.getLogger(__name__)

    @property
    def state(self) -> SchedulerState:
        return self._state

    async def run(self, stop_event: asyncio.Event, once: bool = False) -> None:
        watermark: datetime | None = None

        while not stop_event.is_set():
            self._state = SchedulerState.POLLING
            finished, max_seen = await wait_first(self._guarded_cycle(watermark), stop_event)
            if not finished:
                self._logger.info("Shutdown requested during poll cycle")
                break
            watermark = next_watermark(watermark, max_seen)
            if once:
                break

            self._state = SchedulerState.SLEEPING
            finished, _ = await wait_first(asyncio.sleep(self._poll_interval), stop_event)
            if not finished:
                break

        self._state = SchedulerState.STOPPED

    async def poll_once(self, since: datetime | None) -> DispatchResult:
        notifications = await self._feed.fetch_since(since)
        result = await process_cycle(notifications, self._store, self._notifier, dry_run=self._dry_run)
        if result.forwarded:
            self._logger.info("Forwarded %s notification(s)", result.forwarded)
        if result.failed:
            self._logger.warning("%s notification(s) failed to send; will retry next cycle", result.failed)
        self._logger.debug(
            "Poll complete: fetched=%s latest=%s", len(notifications), result.max_updated_at
        )
        return result

    async def _guarded_cycle(self, since: datetime | None) -> datetime | None:
        try:
            result = await self.poll_once(since)
        except GhnotifyError as exc:
            self._logger.error("Poll failed: %s", exc)
            return None
        except Exception:
            self._logger.exception("Poll failed with unexpected error")
            return None
        return result.max_updated_at
