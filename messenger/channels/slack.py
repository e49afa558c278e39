"""
Slack channels.

SlackChannel posts with a bot token through the Web API
(https://api.slack.com/methods/chat.postMessage); SlackWebhookChannel posts
to an incoming webhook (https://api.slack.com/messaging/webhooks).
"""

from __future__ import annotations

import requests

from ..base import DEFAULT_TIMEOUT_SECONDS, Outcome
from .http import HttpChannel

API_URL = "https://slack.com/api/chat.postMessage"
WEBHOOK_BASE_URL = "https://hooks.slack.com"


class SlackChannel(HttpChannel):
    """
    Args:
        access_token: Bot user OAuth token.
        channel: Channel ID or name to post into.
    """

    vendor = "Slack"

    def __init__(
        self,
        access_token: str,
        channel: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = True,
    ):
        super().__init__(timeout=timeout, debug=debug)
        if not access_token:
            raise ValueError("Slack access token must be configured")
        self.access_token = access_token
        self.channel = channel

    def provider(self) -> str:
        return API_URL

    def send(self, message: str) -> Outcome:
        return self._post(
            self.provider(),
            json={"channel": self.channel, "text": message},
            headers={"Authorization": f"Bearer {self.access_token}"},
        )

    def _interpret(self, response: requests.Response) -> Outcome:
        result = self._json(response)
        if not isinstance(result, dict) or not result.get("ok"):
            error = result.get("error") if isinstance(result, dict) else None
            detail = f" ({error})" if error else ""
            return self._fail(
                f"An error occurred when connecting to Slack.{detail}",
                raw_result=result if result is not None else response.text,
                http_status=response.status_code,
            )
        return self._ok(result, response.status_code)


class SlackWebhookChannel(HttpChannel):
    """
    Args:
        webhook: Incoming webhook URL; must live under https://hooks.slack.com.
    """

    vendor = "Slack webhook"

    def __init__(
        self,
        webhook: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = True,
    ):
        super().__init__(timeout=timeout, debug=debug)
        self.webhook = webhook

    def provider(self) -> str:
        return WEBHOOK_BASE_URL

    def send(self, message: str) -> Outcome:
        if not self.webhook.startswith(WEBHOOK_BASE_URL + "/"):
            return self._fail("Webhook URL is invalid.", raw_result=self.webhook)
        return self._post(self.webhook, json={"text": message})

    def _interpret(self, response: requests.Response) -> Outcome:
        body = response.text.strip()
        if body != "ok":
            return self._fail(
                "An error occurred when connecting to Slack via webhook.",
                raw_result=body,
                http_status=response.status_code,
            )
        return self._ok(body, response.status_code)

    def __repr__(self) -> str:
        return f"SlackWebhookChannel(provider='{WEBHOOK_BASE_URL}')"
