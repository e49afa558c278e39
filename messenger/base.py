"""
Channel contract shared by every transport.

Each channel takes a message string and returns an Outcome. Mail channels
additionally carry an address book and a subject.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import asdict, dataclass
from typing import Any, Optional, Protocol, Union

from .address import Address, AddressBook, Role
from .envelope import MessageEnvelope

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5


@dataclass
class Outcome:
    """
    Result of one `send` call on any channel.

    `raw_result` holds whatever the transport produced: the decoded vendor
    response for HTTP channels, or the step-keyed transcript for SMTP.
    `http_status` is None for transports that are not HTTP.
    """

    success: bool
    message: str
    raw_result: Any = None
    http_status: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def render(self, fmt: str = "plaintext") -> str:
        """
        Render the outcome for logs.

        Args:
            fmt: "plaintext" for `key: value` lines (mappings in `raw_result`
                get their own `--- result ---` section) or "json".

        Raises:
            ValueError: If `fmt` is not a supported format.
        """
        if fmt == "json":
            return json.dumps(self.to_dict(), indent=4, default=str)
        if fmt != "plaintext":
            raise ValueError(f"Unsupported result format: {fmt!r}")

        lines = []
        for key, value in self.to_dict().items():
            if isinstance(value, Mapping) and value:
                lines.append(f"--- {key} ---")
                for sub_key, sub_value in value.items():
                    values = sub_value if isinstance(sub_value, list) else [sub_value]
                    lines.extend(f"{sub_key}: {_plain(item)}" for item in values)
            else:
                lines.append(f"{key}: {_plain(value)}")
        return "\n".join(lines) + "\n"


def _plain(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, default=str)
    return str(value).strip()


class NotificationChannel(Protocol):
    """
    Protocol for a notification channel implementation.

    Every channel takes a plain message string and reports an Outcome.
    """

    def send(self, message: str) -> Outcome:
        """Send the message via this channel."""

    def provider(self) -> str:
        """Endpoint (URL or host) the channel delivers to."""


class Channel(ABC):
    """
    Abstract base class for the concrete channels.

    Args:
        timeout: Seconds allowed for connecting to the remote service.
        debug: When True, a failed delivery raises instead of only being
            reported through the returned Outcome.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS, debug: bool = True):
        self.timeout = timeout
        self.debug = debug

    @abstractmethod
    def send(self, message: str) -> Outcome:
        """Deliver `message` and report the result."""

    @abstractmethod
    def provider(self) -> str:
        """Endpoint (URL or host) the channel delivers to."""

    def debug_mode(self, mode: bool = False) -> None:
        self.debug = mode

    def set_timeout(self, seconds: float) -> None:
        self.timeout = seconds

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider='{self.provider()}')"


class MailChannel(Channel):
    """
    Base for channels that deliver e-mail.

    Holds the address book and subject; `envelope()` snapshots them into a
    MessageEnvelope for one send.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS, debug: bool = True):
        super().__init__(timeout=timeout, debug=debug)
        self.address_book = AddressBook()
        self.subject = ""

    def add_recipient(
        self,
        email: str,
        name: Optional[str] = None,
        role: Union[Role, str, None] = Role.TO,
    ) -> Address:
        return self.address_book.add_recipient(email, name, role)

    def set_recipients(self, recipients: Iterable[Mapping[str, Any]]) -> None:
        self.address_book.set_recipients(recipients)

    def set_sender(self, email: str, name: Optional[str] = None) -> Address:
        return self.address_book.set_sender(email, name)

    def add_reply_to(self, email: str, name: Optional[str] = None) -> Address:
        return self.address_book.add_reply_to(email, name)

    def set_subject(self, subject: str) -> None:
        self.subject = subject

    def envelope(self, body: str, fallback_sender: Optional[str] = None) -> MessageEnvelope:
        return MessageEnvelope.from_address_book(
            self.address_book, self.subject, body, fallback_sender=fallback_sender
        )


class Notifier:
    """
    Sends one message through several channels, one after another.
    """

    def __init__(self, channels: Union[Sequence[NotificationChannel], Mapping[str, NotificationChannel]]):
        if isinstance(channels, Mapping):
            self._channels = dict(channels)
        else:
            self._channels = {
                f"{channel.__class__.__name__}#{index}": channel
                for index, channel in enumerate(channels)
            }

    @property
    def channel_names(self) -> list[str]:
        return list(self._channels)

    @property
    def channels(self) -> dict[str, NotificationChannel]:
        return dict(self._channels)

    def notify(self, message: str) -> dict[str, Outcome]:
        """
        Send a message through all configured channels.

        If one channel fails, the error is logged, recorded as a failed
        Outcome and processing continues with the next channel.

        Args:
            message: The message body to send.

        Returns:
            Outcomes keyed by channel name, in channel order.
        """
        outcomes: dict[str, Outcome] = {}
        for name, channel in self._channels.items():
            try:
                outcomes[name] = channel.send(message)
            except Exception as e:
                logger.error(
                    f"Channel {name} failed to send notification: {e}",
                    exc_info=True,
                )
                outcomes[name] = Outcome(success=False, message=str(e))
        return outcomes


__all__ = [
    "Channel",
    "DEFAULT_TIMEOUT_SECONDS",
    "MailChannel",
    "NotificationChannel",
    "Notifier",
    "Outcome",
]
