"""Telegram notifier: delivers messages through the Bot HTTP API."""

from __future__ import annotations

import logging
from typing import Any

import requests

from m7m.errors import NotificationError
from m7m.notifiers.base import Notifier

logger = logging.getLogger(__name__)


class TelegramNotifier(Notifier):
    """Sends each message to one chat via ``sendMessage``.

    Delivery is a single request; retries are left to the flow definition.
    """

    def __init__(
        self,
        *,
        token: str,
        chat_id: str,
        base_url: str = "https://api.telegram.org",
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is required")
        if not chat_id:
            raise ValueError("Telegram chat id is required")

        self._token = token
        self.chat_id = chat_id
        self._url = f"{base_url.rstrip('/')}/bot{token}/sendMessage"
        self._timeout = timeout
        self._session = session or requests.Session()

    def send(self, message: str) -> None:
        try:
            resp = self._session.post(
                self._url,
                data={"chat_id": self.chat_id, "text": message},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            # The URL embeds the token; keep it out of the message.
            raise NotificationError(
                f"telegram notification to chat {self.chat_id} failed: {type(e).__name__}"
            ) from None

        if not 200 <= resp.status_code < 300:
            raise NotificationError(
                f"telegram notification to chat {self.chat_id} returned {resp.status_code}"
            )

        try:
            result: Any = resp.json()
        except ValueError:
            raise NotificationError("telegram notification returned a non-JSON body") from None

        if not isinstance(result, dict) or not result.get("ok"):
            description = result.get("description") if isinstance(result, dict) else None
            raise NotificationError(
                f"telegram notification returned an error: {description or 'unknown error'}"
            )

        logger.debug("Telegram message sent", extra={"chat_id": self.chat_id})
