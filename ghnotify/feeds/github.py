from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Any

import httpx

from .base import BaseFeed, Notification
from ..errors import FetchError


GITHUB_API_URL = "https://api.github.com"
GITHUB_API_VERSION = "2022-11-28"
PAGE_SIZE = 50
MAX_PAGES = 255


@dataclass
class GitHubSettings:
    token: str
    timeout_seconds: int
    user_agent: str
    api_url: str = GITHUB_API_URL
    per_page: int = PAGE_SIZE
    max_pages: int = MAX_PAGES


class GitHubNotificationsFeed(BaseFeed):
    def __init__(self, settings: GitHubSettings) -> None:
        self._settings = settings
        self._logger = logging.getLogger(__name__)

    async def fetch_since(self, since: datetime | None = None) -> list[Notification]:
        endpoint = f"{self._settings.api_url.rstrip('/')}/notifications"
        headers = {
            "Accept": "application/vnd.github+json",
            "Authorization": f"Bearer {self._settings.token}",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": self._settings.user_agent,
        }
        per_page = self._settings.per_page
        items: list[Notification] = []
        page = 1

        async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
            while True:
                params: dict[str, Any] = {
                    "all": "false",
                    "participating": "false",
                    "per_page": per_page,
                    "page": page,
                }
                if since is not None:
                    params["since"] = _to_iso(since)

                payload = await _fetch_page(client, endpoint, headers, params, page)
                items.extend(self._parse_items(payload))

                if len(payload) < per_page:
                    break
                if page >= self._settings.max_pages:
                    self._logger.warning(
                        "Stopped paging GitHub notifications at page cap %s", self._settings.max_pages
                    )
                    break
                page += 1

        self._logger.debug("Fetched %s notification(s) across %s page(s)", len(items), page)
        return items

    def _parse_items(self, entries: list[Any]) -> list[Notification]:
        results: list[Notification] = []
        for entry in entries:
            notification = _parse_item(entry)
            if notification is None:
                self._logger.warning("Skipping malformed notification payload: %r", entry)
                continue
            results.append(notification)
        return results


async def _fetch_page(
    client: httpx.AsyncClient,
    endpoint: str,
    headers: dict[str, str],
    params: dict[str, Any],
    page: int,
) -> list[Any]:
    try:
        response = await client.get(endpoint, headers=headers, params=params)
    except httpx.HTTPError as exc:
        raise FetchError(f"request github notifications page {page}: {exc}", page=page) from exc

    if not response.is_success:
        raise FetchError(
            f"request github notifications page {page}: status={response.status_code} body={response.text}",
            page=page,
        )
    try:
        payload = response.json()
    except ValueError as exc:
        raise FetchError(f"decode github notifications page {page}: {exc}", page=page) from exc
    if not isinstance(payload, list):
        raise FetchError(f"github notifications page {page} is not a list", page=page)
    return payload


def _parse_item(entry: Any) -> Notification | None:
    if not isinstance(entry, dict):
        return None
    thread_id = entry.get("id")
    updated_raw = entry.get("updated_at")
    if thread_id is None or not updated_raw:
        return None
    try:
        updated_at = _parse_datetime(str(updated_raw))
    except ValueError:
        return None

    repository = entry.get("repository") or {}
    subject = entry.get("subject") or {}
    if not isinstance(repository, dict) or not isinstance(subject, dict):
        return None
    return Notification(
        id=str(thread_id),
        unread=bool(entry.get("unread", False)),
        updated_at=updated_at,
        repository=repository.get("full_name") or None,
        subject_type=str(subject.get("type") or ""),
        subject_title=str(subject.get("title") or ""),
        reason=str(entry.get("reason") or ""),
        raw_data=entry,
    )


def _parse_datetime(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _to_iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
