"""
RocketChat channel (REST API chat.postMessage).

API reference: https://developer.rocket.chat/reference/api/rest-api/endpoints/messaging/chat-endpoints/postmessage
"""

from __future__ import annotations

import requests

from ..base import DEFAULT_TIMEOUT_SECONDS, Outcome
from .http import HttpChannel

DEFAULT_SERVER_URL = "http://localhost:3000"
DEFAULT_CHANNEL = "#general"


class RocketChatChannel(HttpChannel):
    """
    Args:
        access_token: The user's personal access token.
        user_id: The user's ID.
        server_url: Base URL of the RocketChat server.
        channel: Channel name including its prefix (`#general`, `@user`).
    """

    vendor = "RocketChat"

    def __init__(
        self,
        access_token: str,
        user_id: str,
        server_url: str = DEFAULT_SERVER_URL,
        channel: str = DEFAULT_CHANNEL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = True,
    ):
        super().__init__(timeout=timeout, debug=debug)
        if not access_token or not user_id:
            raise ValueError("RocketChat access token and user ID must be configured")
        self.access_token = access_token
        self.user_id = user_id
        self.server_url = server_url.rstrip("/")
        self.channel = channel

    def provider(self) -> str:
        return f"{self.server_url}/api/v1/chat.postMessage"

    def send(self, message: str) -> Outcome:
        return self._post(
            self.provider(),
            json={"text": message, "channel": self.channel},
            headers={
                "X-User-Id": self.user_id,
                "X-Auth-Token": self.access_token,
            },
        )

    def _interpret(self, response: requests.Response) -> Outcome:
        result = self._json(response)
        if not isinstance(result, dict) or not result.get("success"):
            message = None
            if isinstance(result, dict):
                message = result.get("error")
                nested = result.get("message")
                if not message and isinstance(nested, dict):
                    message = nested.get("msg")
            return self._fail(
                message or "An error occurred when connecting to the RocketChat API.",
                raw_result=result if result is not None else response.text,
                http_status=response.status_code,
            )
        return self._ok(result, response.status_code)
