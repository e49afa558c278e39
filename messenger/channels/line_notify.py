"""
LINE Notify channel.

The access token comes from the `Generate token` button at
https://notify-bot.line.me/my/
"""

from __future__ import annotations

import requests

from ..base import DEFAULT_TIMEOUT_SECONDS, Outcome
from .http import HttpChannel

PROVIDER_URL = "https://notify-api.line.me/api/notify"


class LineNotifyChannel(HttpChannel):
    vendor = "LINE Notify"

    def __init__(
        self,
        access_token: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = True,
    ):
        super().__init__(timeout=timeout, debug=debug)
        if not access_token:
            raise ValueError("LINE Notify access token must be configured")
        self.access_token = access_token

    def provider(self) -> str:
        return PROVIDER_URL

    def send(self, message: str) -> Outcome:
        return self._post(
            self.provider(),
            data={"message": message},
            headers={"Authorization": f"Bearer {self.access_token}"},
        )

    def _interpret(self, response: requests.Response) -> Outcome:
        result = self._json(response)
        if not isinstance(result, dict) or result.get("status") != 200:
            detail = result.get("message", "") if isinstance(result, dict) else response.text
            return self._fail(
                f"An error occurred when connecting to the LINE Notify API. ({detail})",
                raw_result=result,
                http_status=response.status_code,
            )
        return self._ok(result, response.status_code)
