"""
Shared HTTP plumbing for the vendor channels.

Every vendor channel POSTs one request with `requests` and interprets the
reply. Transport errors, empty bodies and vendor-reported errors all end up
as a failed Outcome; in debug mode they raise ChannelError instead.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any, Optional

import requests

from ..base import Channel, Outcome
from ..errors import ChannelError

logger = logging.getLogger(__name__)

USER_AGENT = "messenger/0.1"
EMPTY_RESPONSE = "The target returned an empty string."


class HttpChannel(Channel):
    """
    Base class for channels backed by a vendor REST endpoint.

    Subclasses implement `send()` by calling `_post()` and return what
    `_interpret()` decides about the response.
    """

    vendor = "HTTP"
    # Some endpoints (Sendgrid) answer success with an empty body.
    allow_empty = False

    def _post(self, url: str, **kwargs: Any) -> Outcome:
        """
        POST to `url` and hand the response to `_interpret()`.

        Keyword arguments are passed to `requests.post` (json, data, headers,
        auth). The channel timeout applies to connect and read.
        """
        headers = {"User-Agent": USER_AGENT}
        headers.update(kwargs.pop("headers", None) or {})

        logger.debug(
            "Posting to %s",
            self.vendor,
            extra={"vendor": self.vendor, "timeout": self.timeout},
        )

        try:
            response = requests.post(url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.RequestException as e:
            return self._fail(f"Request to {self.vendor} failed: {e}")

        if not response.text and not self.allow_empty:
            return self._fail(EMPTY_RESPONSE, raw_result="", http_status=response.status_code)

        return self._interpret(response)

    @abstractmethod
    def _interpret(self, response: requests.Response) -> Outcome:
        """Map the vendor's response to an Outcome."""

    @staticmethod
    def _json(response: requests.Response) -> Optional[Any]:
        """Decode a JSON body, or None when the body is not JSON."""
        try:
            return response.json()
        except ValueError:
            return None

    def _ok(self, raw_result: Any, http_status: Optional[int]) -> Outcome:
        logger.info(
            "%s delivery succeeded",
            self.vendor,
            extra={"vendor": self.vendor, "status_code": http_status},
        )
        return Outcome(
            success=True,
            message=f"{self.vendor} accepted the message.",
            raw_result=raw_result,
            http_status=http_status,
        )

    def _fail(
        self,
        message: str,
        raw_result: Any = None,
        http_status: Optional[int] = None,
    ) -> Outcome:
        """
        Build a failed Outcome.

        Raises:
            ChannelError: In debug mode, carrying the failed Outcome.
        """
        outcome = Outcome(
            success=False,
            message=message,
            raw_result=raw_result,
            http_status=http_status,
        )
        logger.error(
            "%s delivery failed: %s",
            self.vendor,
            message,
            extra={"vendor": self.vendor, "status_code": http_status},
        )
        if self.debug:
            raise ChannelError(message, outcome)
        return outcome


__all__ = ["EMPTY_RESPONSE", "HttpChannel", "USER_AGENT"]
