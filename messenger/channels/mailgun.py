"""
Mailgun channel (Messages API v3).

API reference: https://documentation.mailgun.com/en/latest/api-sending.html
"""

from __future__ import annotations

from typing import Any

import requests

from ..base import DEFAULT_TIMEOUT_SECONDS, MailChannel, Outcome
from ..errors import MissingRecipient, MissingSender
from ..headers import format_address
from .http import HttpChannel

API_BASE_URL = "https://api.mailgun.net/v3"


class MailgunChannel(MailChannel, HttpChannel):
    """
    Sends e-mail through the Mailgun HTTP API.

    Args:
        api_key: Mailgun private API key.
        domain: Sending domain you are authorised for.
    """

    vendor = "Mailgun"

    def __init__(
        self,
        api_key: str,
        domain: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = True,
    ):
        super().__init__(timeout=timeout, debug=debug)
        if not api_key:
            raise ValueError("Mailgun API key must be configured")
        if not domain:
            raise ValueError("Mailgun domain must be configured")
        self.api_key = api_key
        self.domain = domain

    def provider(self) -> str:
        return f"{API_BASE_URL}/{self.domain}/messages"

    def prepare(self, message: str) -> dict[str, Any]:
        """
        Build the form fields for the Messages endpoint.

        Mailgun refuses messages without a `to` field, so when only Cc/Bcc
        recipients exist the sender is used as `to`.

        Raises:
            MissingSender: If no sender is configured.
            MissingRecipient: If no recipient is configured.
        """
        envelope = self.envelope(message)
        if envelope.sender is None:
            raise MissingSender()
        to_group, cc_group, bcc_group = envelope.partition()
        if not (to_group or cc_group or bcc_group):
            raise MissingRecipient()

        data: dict[str, Any] = {}
        data["to"] = [a.email for a in to_group] if to_group else envelope.sender.email
        if cc_group:
            data["cc"] = [a.email for a in cc_group]
        if bcc_group:
            data["bcc"] = [a.email for a in bcc_group]

        data["from"] = format_address(envelope.sender)
        data["subject"] = envelope.subject
        if envelope.reply_to is not None:
            data["h:Reply-To"] = format_address(envelope.reply_to)

        if envelope.is_html:
            data["html"] = message
        else:
            data["text"] = message
        return data

    def send(self, message: str) -> Outcome:
        return self._post(
            self.provider(),
            data=self.prepare(message),
            auth=("api", self.api_key),
        )

    def _interpret(self, response: requests.Response) -> Outcome:
        result = self._json(response)
        raw = result if result is not None else response.text
        if response.status_code != 200:
            return self._fail(
                f"An error occurred when accessing the Mailgun v3 API. (#{response.status_code})",
                raw_result=raw,
                http_status=response.status_code,
            )
        return self._ok(raw, response.status_code)
