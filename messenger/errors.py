"""
Exceptions raised by the messenger package.

Validation errors surface at the call that received the bad input. Resource
errors (socket open, TLS upgrade) are always raised. Protocol mismatches are
raised only when the session's mismatch policy asks for it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .transcript import Transcript


class MessengerError(Exception):
    """Base class for all messenger errors."""


class InvalidAddress(MessengerError, ValueError):
    """Raised when an e-mail address fails syntax validation."""

    def __init__(self, email: Any, detail: str = ""):
        self.email = email
        message = f"Invalid email address: {email!r}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MissingSender(MessengerError, ValueError):
    """Raised when a message is built without a sender."""

    def __init__(self, message: str = "A sender is required to build the message headers"):
        super().__init__(message)


class MissingRecipient(MessengerError, ValueError):
    """Raised when a message has no recipient at all."""

    def __init__(self, message: str = "At least one recipient is required"):
        super().__init__(message)


class SmtpConnectionError(MessengerError, ConnectionError):
    """Raised when the SMTP socket cannot be opened or breaks mid-session."""

    def __init__(
        self,
        host: str,
        port: int,
        errno: Optional[int] = None,
        errstr: str = "",
        transcript: Optional["Transcript"] = None,
    ):
        # OSError parses its own args, so set the fields after it runs.
        super().__init__(
            f"An error occurred when connecting to {host}:{port} (#{errno} - {errstr})"
        )
        self.host = host
        self.port = port
        self.errno = errno
        self.errstr = errstr
        self.transcript = transcript


class ProtocolMismatch(MessengerError):
    """Raised when the server answers a step with an unexpected code."""

    def __init__(
        self,
        step: str,
        expected: int,
        got: Optional[int],
        response: str,
        transcript: Optional["Transcript"] = None,
    ):
        self.step = step
        self.expected = expected
        self.got = got
        self.response = response
        self.transcript = transcript
        super().__init__(
            f"SMTP step '{step}' expected {expected}, got {got}: {response.strip()}"
        )


class TlsUpgradeError(MessengerError):
    """Raised when STARTTLS is refused or the TLS handshake fails."""

    def __init__(self, message: str, transcript: Optional["Transcript"] = None):
        self.transcript = transcript
        super().__init__(message)


class UnsupportedTransport(MessengerError):
    """Raised when no stream transport is available for the requested host."""


class ChannelError(MessengerError):
    """Raised by HTTP channels in debug mode when a delivery fails."""

    def __init__(self, message: str, outcome: Any = None):
        self.outcome = outcome
        super().__init__(message)


__all__ = [
    "MessengerError",
    "InvalidAddress",
    "MissingSender",
    "MissingRecipient",
    "SmtpConnectionError",
    "ProtocolMismatch",
    "TlsUpgradeError",
    "UnsupportedTransport",
    "ChannelError",
]
