from __future__ import annotations

import unittest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import httpx

from ghnotify.errors import FetchError
from ghnotify.feeds.github import GitHubNotificationsFeed, GitHubSettings


def _entry(thread_id: int, updated: str = "2026-01-01T10:00:00Z", unread: bool = True) -> dict:
    return {
        "id": str(thread_id),
        "unread": unread,
        "reason": "review_requested",
        "updated_at": updated,
        "subject": {"title": f"PR {thread_id}", "type": "PullRequest"},
        "repository": {"full_name": "octo/repo"},
    }


def _feed(max_pages: int = 255) -> GitHubNotificationsFeed:
    return GitHubNotificationsFeed(
        GitHubSettings(token="ghp_test", timeout_seconds=5, user_agent="ghnotify/test", max_pages=max_pages)
    )


class GitHubFeedTests(unittest.IsolatedAsyncioTestCase):
    async def test_pages_until_short_page(self) -> None:
        first_page = [_entry(i) for i in range(50)]
        second_page = [_entry(i) for i in range(50, 53)]

        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_client.return_value.__aenter__.return_value
            instance.get = AsyncMock(
                side_effect=[httpx.Response(200, json=first_page), httpx.Response(200, json=second_page)]
            )
            items = await _feed().fetch_since(None)

        self.assertEqual(len(items), 53)
        self.assertEqual(instance.get.await_count, 2)
        pages = [call.kwargs["params"]["page"] for call in instance.get.call_args_list]
        self.assertEqual(pages, [1, 2])
        first_params = instance.get.call_args_list[0].kwargs["params"]
        self.assertEqual(first_params["per_page"], 50)
        self.assertEqual(first_params["all"], "false")
        self.assertNotIn("since", first_params)
        headers = instance.get.call_args_list[0].kwargs["headers"]
        self.assertEqual(headers["Authorization"], "Bearer ghp_test")

    async def test_since_is_sent_as_utc_iso(self) -> None:
        since = datetime(2026, 1, 1, 9, 59, 59, tzinfo=timezone.utc)
        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_client.return_value.__aenter__.return_value
            instance.get = AsyncMock(return_value=httpx.Response(200, json=[]))
            items = await _feed().fetch_since(since)

        self.assertEqual(items, [])
        params = instance.get.call_args.kwargs["params"]
        self.assertEqual(params["since"], "2026-01-01T09:59:59Z")

    async def test_parses_notification_fields(self) -> None:
        entry = _entry(7, updated="2026-02-03T04:05:06Z", unread=False)
        entry["repository"] = None
        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_client.return_value.__aenter__.return_value
            instance.get = AsyncMock(return_value=httpx.Response(200, json=[entry, {"unread": True}]))
            items = await _feed().fetch_since(None)

        self.assertEqual(len(items), 1)
        item = items[0]
        self.assertEqual(item.id, "7")
        self.assertFalse(item.unread)
        self.assertEqual(item.updated_at, datetime(2026, 2, 3, 4, 5, 6, tzinfo=timezone.utc))
        self.assertIsNone(item.repository)
        self.assertEqual(item.subject_type, "PullRequest")
        self.assertEqual(item.subject_title, "PR 7")
        self.assertEqual(item.reason, "review_requested")

    async def test_non_object_repository_or_subject_is_skipped(self) -> None:
        bad_repo = _entry(1)
        bad_repo["repository"] = "octo/repo"
        bad_subject = _entry(2)
        bad_subject["subject"] = "PR 2"
        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_client.return_value.__aenter__.return_value
            instance.get = AsyncMock(
                return_value=httpx.Response(200, json=[bad_repo, bad_subject, _entry(3)])
            )
            with self.assertLogs("ghnotify.feeds.github", level="WARNING"):
                items = await _feed().fetch_since(None)

        self.assertEqual([item.id for item in items], ["3"])

    async def test_stops_at_page_cap(self) -> None:
        full_page = [_entry(i) for i in range(50)]
        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_client.return_value.__aenter__.return_value
            instance.get = AsyncMock(return_value=httpx.Response(200, json=full_page))
            items = await _feed(max_pages=3).fetch_since(None)

        self.assertEqual(instance.get.await_count, 3)
        self.assertEqual(len(items), 150)

    async def test_error_status_abandons_whole_fetch(self) -> None:
        first_page = [_entry(i) for i in range(50)]
        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_client.return_value.__aenter__.return_value
            instance.get = AsyncMock(
                side_effect=[httpx.Response(200, json=first_page), httpx.Response(502, text="bad gateway")]
            )
            with self.assertRaises(FetchError) as ctx:
                await _feed().fetch_since(None)

        self.assertEqual(ctx.exception.page, 2)
        self.assertIn("page 2", str(ctx.exception))

    async def test_transport_error_is_fetch_error(self) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_client.return_value.__aenter__.return_value
            instance.get = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
            with self.assertRaises(FetchError) as ctx:
                await _feed().fetch_since(None)

        self.assertEqual(ctx.exception.page, 1)
        self.assertIsInstance(ctx.exception.__cause__, httpx.ConnectError)

    async def test_non_list_payload_is_fetch_error(self) -> None:
        with patch("httpx.AsyncClient") as mock_client:
            instance = mock_client.return_value.__aenter__.return_value
            instance.get = AsyncMock(return_value=httpx.Response(200, json={"message": "Bad credentials"}))
            with self.assertRaises(FetchError):
                await _feed().fetch_since(None)
