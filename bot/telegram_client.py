# bot/telegram_client.py

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

API_BASE = "https://api.telegram.org"


class TelegramError(Exception):
    """Bot API answered with ok=false."""


class TelegramClient:
    """
    Minimal Bot API client: only the calls the case bot needs.
    """

    def __init__(self, token: str, timeout: float = 10, session: Optional[requests.Session] = None):
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def _call(self, method: str, http_timeout: Optional[float] = None, **params):
        resp = self.session.post(
            f"{API_BASE}/bot{self.token}/{method}",
            json={k: v for k, v in params.items() if v is not None},
            timeout=http_timeout or self.timeout,
        )
        resp.raise_for_status()
        data = resp.json()
        if not data.get("ok"):
            raise TelegramError(data.get("description") or f"{method} failed")
        return data.get("result")

    def send_message(self, chat_id, text: str):
        return self._call("sendMessage", chat_id=chat_id, text=text)

    def get_updates(self, offset: Optional[int] = None, poll_timeout: int = 30) -> list:
        # Long poll: HTTP timeout must outlive the server-side wait
        return self._call(
            "getUpdates",
            http_timeout=poll_timeout + 10,
            offset=offset,
            timeout=poll_timeout,
            allowed_updates=["message"],
        ) or []

    def set_webhook(self, url: str, secret_token: Optional[str] = None):
        return self._call("setWebhook", url=url, secret_token=secret_token)

    def delete_webhook(self):
        return self._call("deleteWebhook")
