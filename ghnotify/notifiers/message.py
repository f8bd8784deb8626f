from __future__ import annotations

from ..feeds.base import Notification


GITHUB_WEB_URL = "https://github.com"
UNKNOWN_REPOSITORY = "unknown/unknown"


def thread_url(notification_id: str) -> str:
    return f"{GITHUB_WEB_URL}/notifications/threads/{notification_id}"


def format_message(notification: Notification) -> str:
    repo_name = notification.repository or UNKNOWN_REPOSITORY
    lines = [
        "🔔 GitHub Notification",
        f"Repo: {repo_name}",
        f"Type: {notification.subject_type}",
        f"Reason: {notification.reason}",
        f"Title: {notification.subject_title}",
        f"Updated: {notification.updated_at.isoformat()}",
        f"Thread: {thread_url(notification.id)}",
        f"Inbox: {GITHUB_WEB_URL}/notifications",
    ]
    return "\n".join(lines)
