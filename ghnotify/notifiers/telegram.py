from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any

import httpx

from .base import BaseNotifier
from ..errors import SendError


TELEGRAM_API_URL = "https://api.telegram.org"


@dataclass
class TelegramSettings:
    bot_token: str
    chat_id: str
    timeout_seconds: int
    user_agent: str
    api_url: str = TELEGRAM_API_URL


class TelegramNotifier(BaseNotifier):
    def __init__(self, settings: TelegramSettings) -> None:
        self._settings = settings
        self._logger = logging.getLogger(__name__)

    async def send(self, text: str) -> None:
        url = f"{self._settings.api_url.rstrip('/')}/bot{self._settings.bot_token}/sendMessage"
        payload = _build_payload(self._settings.chat_id, text)
        headers = {"User-Agent": self._settings.user_agent}

        async with httpx.AsyncClient(timeout=self._settings.timeout_seconds) as client:
            try:
                response = await client.post(url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                # the exception text can carry the request URL, which embeds the bot token
                raise SendError(f"request telegram sendMessage: {type(exc).__name__}") from exc

        if not response.is_success:
            body = _read_body(response)
            raise SendError(
                f"telegram send status={response.status_code} body={body}",
                status_code=response.status_code,
                body=body,
            )
        self._logger.debug("Telegram accepted message for chat %s", self._settings.chat_id)


def _build_payload(chat_id: str, text: str) -> dict[str, Any]:
    return {
        "chat_id": chat_id,
        "text": text,
        "disable_web_page_preview": True,
    }


def _read_body(response: httpx.Response) -> str:
    try:
        return response.text
    except (httpx.ResponseNotRead, UnicodeDecodeError):
        return "<failed to read body>"
