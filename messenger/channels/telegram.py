"""
Telegram channel (Bot API sendMessage).

Talk to `BotFather` and run `/newbot` to obtain an API key. The channel is
the public channel name (e.g. `@your_channel_name`) or a chat ID.
"""

from __future__ import annotations

import requests

from ..base import DEFAULT_TIMEOUT_SECONDS, Outcome
from .http import HttpChannel

API_BASE_URL = "https://api.telegram.org"


class TelegramChannel(HttpChannel):
    vendor = "Telegram"

    def __init__(
        self,
        api_key: str,
        channel: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = True,
    ):
        super().__init__(timeout=timeout, debug=debug)
        if not api_key:
            raise ValueError("Telegram API key must be configured")
        self.api_key = api_key
        self.channel = channel

    def provider(self) -> str:
        return f"{API_BASE_URL}/bot{self.api_key}/sendMessage"

    def send(self, message: str) -> Outcome:
        return self._post(
            self.provider(),
            data={"text": message, "chat_id": self.channel},
        )

    def _interpret(self, response: requests.Response) -> Outcome:
        result = self._json(response)
        if not isinstance(result, dict) or not result.get("ok"):
            description = result.get("description", "") if isinstance(result, dict) else response.text
            return self._fail(
                f"An error occurred when connecting to the Telegram API. ({description})",
                raw_result=result,
                http_status=response.status_code,
            )
        return self._ok(result, response.status_code)

    def __repr__(self) -> str:
        # provider() embeds the bot token
        return f"TelegramChannel(channel='{self.channel}')"
