"""
SMTP mail channel.

Wraps the built-in client in `messenger.smtp`: every send opens a fresh
`SmtpSession`, and the connection settings come from an `SmtpConfig`, the
`SMTP_*` environment variables or a named provider preset.
"""

from __future__ import annotations

import socket
import ssl
from typing import Any, Optional

from ..base import MailChannel, Outcome
from ..envelope import MessageEnvelope
from ..presets import smtp_preset
from ..smtp import SmtpConfig, SmtpResult, SmtpSession, SocketFactory


class SmtpChannel(MailChannel):
    """
    E-mail channel backed by the built-in SMTP client.

    Every send opens a new SmtpSession, so one channel can be reused for any
    number of messages without state leaking between them. When no sender is
    set, the SMTP username is used as the sender address.

    Example:
        channel = SmtpChannel.preset("gmail", "me@gmail.com", "app-password")
        channel.add_recipient("ops@example.com")
        channel.set_subject("Disk almost full")
        outcome = channel.send("Only 3% left on /var")
    """

    def __init__(
        self,
        config: SmtpConfig,
        debug: bool = True,
        socket_factory: SocketFactory = socket.create_connection,
        ssl_context: Optional[ssl.SSLContext] = None,
    ):
        super().__init__(timeout=config.timeout, debug=debug)
        self.config = config
        self._socket_factory = socket_factory
        self._ssl_context = ssl_context

    @classmethod
    def from_env(cls, **kwargs: Any) -> "SmtpChannel":
        """Build the channel from SMTP_* environment variables."""
        return cls(SmtpConfig.from_env(), **kwargs)

    @classmethod
    def preset(cls, name: str, username: str, password: str, **kwargs: Any) -> "SmtpChannel":
        """Build the channel from a named preset (see messenger.presets)."""
        preset_kwargs = {k: kwargs.pop(k) for k in ("encryption", "timeout") if k in kwargs}
        return cls(smtp_preset(name, username, password, **preset_kwargs), **kwargs)

    def provider(self) -> str:
        return f"{self.config.host}:{self.config.port}"

    def set_timeout(self, seconds: float) -> None:
        super().set_timeout(seconds)
        self.config.timeout = seconds

    def session(self) -> SmtpSession:
        return SmtpSession(
            self.config,
            debug=self.debug,
            socket_factory=self._socket_factory,
            ssl_context=self._ssl_context,
        )

    def send_envelope(self, envelope: MessageEnvelope) -> SmtpResult:
        return self.session().send(envelope)

    def send(self, message: str) -> Outcome:
        envelope = self.envelope(message, fallback_sender=self.config.username)
        return self.send_envelope(envelope).to_outcome()
