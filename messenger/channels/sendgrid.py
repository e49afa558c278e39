"""
Sendgrid channel (Mail Send API v3).

API reference: https://docs.sendgrid.com/api-reference/mail-send/mail-send
"""

from __future__ import annotations

from typing import Any

import requests

from ..address import Address
from ..base import DEFAULT_TIMEOUT_SECONDS, MailChannel, Outcome
from ..errors import MissingRecipient, MissingSender
from .http import HttpChannel

PROVIDER_URL = "https://api.sendgrid.com/v3/mail/send"


def _identity(address: Address) -> dict[str, str]:
    identity = {"email": address.email}
    if address.name:
        identity["name"] = address.name
    return identity


class SendgridChannel(MailChannel, HttpChannel):
    """Sends e-mail through the Sendgrid v3 API."""

    vendor = "Sendgrid"
    allow_empty = True

    def __init__(
        self,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        debug: bool = True,
    ):
        super().__init__(timeout=timeout, debug=debug)
        if not api_key:
            raise ValueError("Sendgrid API key must be configured")
        self.api_key = api_key

    def provider(self) -> str:
        return PROVIDER_URL

    def prepare(self, message: str) -> dict[str, Any]:
        """
        Build the v3 JSON document: one personalization carrying all recipients.

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

        personalization: dict[str, Any] = {
            "to": [_identity(a) for a in to_group] or [_identity(envelope.sender)],
        }
        if cc_group:
            personalization["cc"] = [_identity(a) for a in cc_group]
        if bcc_group:
            personalization["bcc"] = [_identity(a) for a in bcc_group]

        payload: dict[str, Any] = {
            "personalizations": [personalization],
            "from": _identity(envelope.sender),
            "subject": envelope.subject,
            "content": [{"type": envelope.content_type.value, "value": message}],
        }
        if envelope.reply_to is not None:
            payload["reply_to"] = _identity(envelope.reply_to)
        return payload

    def send(self, message: str) -> Outcome:
        return self._post(
            self.provider(),
            json=self.prepare(message),
            headers={"Authorization": f"Bearer {self.api_key}"},
        )

    def _interpret(self, response: requests.Response) -> Outcome:
        result = self._json(response)
        raw = result if result is not None else response.text

        if isinstance(result, dict):
            errors = result.get("errors") or []
            if errors and isinstance(errors[0], dict) and errors[0].get("message"):
                return self._fail(
                    errors[0]["message"], raw_result=raw, http_status=response.status_code
                )

        if response.status_code != 202:
            return self._fail(
                f"An error occurred when connecting to the SendGrid v3 API. (#{response.status_code})",
                raw_result=raw,
                http_status=response.status_code,
            )
        return self._ok(raw, response.status_code)
