"""
A minimal SMTP client speaking the wire protocol over a raw socket.

One SmtpSession.send() call opens a socket, walks the fixed command sequence

    greeting -> HELO -> [STARTTLS -> HELO] -> AUTH LOGIN -> MAIL FROM
    -> RCPT TO (to, cc, bcc) -> DATA -> message -> QUIT

and closes the socket again. Every exchange is appended to a Transcript.
What happens on an unexpected reply code is decided by the mismatch policy:
RaiseOnMismatch (the default, `debug=True`) stops at the first mismatch,
RecordMismatch keeps going so the whole conversation ends up in the
transcript. Socket and TLS failures always raise.

Multi-line replies (`250-...` continuation lines) are not supported; this
client only issues HELO, whose reply is a single line.
"""

from __future__ import annotations

import base64
import logging
import os
import re
import socket
import ssl
from contextlib import suppress
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Union

from .base import DEFAULT_TIMEOUT_SECONDS, Outcome
from .envelope import MessageEnvelope
from .errors import (
    MissingRecipient,
    MissingSender,
    ProtocolMismatch,
    SmtpConnectionError,
    TlsUpgradeError,
    UnsupportedTransport,
)
from .headers import CRLF, HeaderBuilder
from .transcript import UNREADABLE_RESPONSE, Mismatch, Ok, Step, Transcript

logger = logging.getLogger(__name__)

MAX_REPLY_LENGTH = 1024
REDACTED = "<redacted>"
SECRET_PATH = "/run/secrets/smtp_password"

SocketFactory = Callable[[tuple[str, int], float], Any]


class Encryption(str, Enum):
    NONE = "none"
    TLS = "tls"  # STARTTLS on a plain connection
    SSL = "ssl"  # TLS from the first byte (SMTPS)

    @classmethod
    def coerce(cls, value: Union["Encryption", str, None]) -> "Encryption":
        if isinstance(value, Encryption):
            return value
        if value is None or not str(value).strip():
            return cls.NONE
        try:
            return cls(str(value).strip().lower())
        except ValueError as err:
            raise ValueError(
                f"Unknown SMTP encryption {value!r}; expected one of none, tls, ssl"
            ) from err


_SCHEMES: dict[str, Optional[Encryption]] = {
    "tcp": None,
    "tls": Encryption.TLS,
    "ssl": Encryption.SSL,
}


def split_host(host: str) -> tuple[str, Optional[Encryption]]:
    """
    Strip a transport prefix from `host`.

    `tls://` selects STARTTLS, `ssl://` selects SMTPS and `tcp://` leaves the
    configured encryption alone.

    Raises:
        UnsupportedTransport: For any other scheme.
    """
    if "://" not in host:
        return host, None
    scheme, _, rest = host.partition("://")
    scheme = scheme.lower()
    if scheme not in _SCHEMES:
        raise UnsupportedTransport(
            f"No stream transport available for scheme '{scheme}://' (host {host!r})"
        )
    return rest, _SCHEMES[scheme]


def _resolve_password() -> str:
    """
    Resolve the SMTP password from SMTP_PASSWORD or the Docker secret file.

    Attempts UTF-8 first and falls back to UTF-16 for the secret file.
    """
    password = os.getenv("SMTP_PASSWORD")
    if password:
        return password
    if os.path.exists(SECRET_PATH):
        try:
            with open(SECRET_PATH, encoding="utf-8") as f:
                return f.read().strip()
        except UnicodeDecodeError:
            with open(SECRET_PATH, encoding="utf-16") as f:
                return f.read().strip()
    return ""


@dataclass
class SmtpConfig:
    """
    Where and how to reach an SMTP server.

    A `tls://` or `ssl://` prefix on `host` overrides `encryption`.
    """

    host: str
    port: int = 25
    username: str = ""
    password: str = ""
    encryption: Encryption = Encryption.NONE
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    local_hostname: Optional[str] = None
    verify_tls: bool = True

    def __post_init__(self) -> None:
        host, scheme_encryption = split_host((self.host or "").strip())
        if not host:
            raise ValueError("SMTP host must be configured")
        self.host = host
        self.encryption = scheme_encryption or Encryption.coerce(self.encryption)
        try:
            self.port = int(self.port)
        except (TypeError, ValueError) as err:
            raise ValueError(f"SMTP port must be numeric, got: {self.port!r}") from err

    @classmethod
    def from_env(cls) -> "SmtpConfig":
        """
        Build a config from environment variables.

        Variables:
          - SMTP_HOST (required)
          - SMTP_PORT (optional, default 587)
          - SMTP_USER (optional)
          - SMTP_PASSWORD (optional; read from /run/secrets/smtp_password if not set)
          - SMTP_ENCRYPTION (optional: none, tls or ssl; default tls)
          - SMTP_TIMEOUT (optional, seconds; default 5)

        Raises:
            ValueError: If SMTP_HOST is missing or a numeric value is not numeric.
        """
        port_str = os.getenv("SMTP_PORT", "587")
        try:
            port = int(port_str)
        except ValueError as err:
            raise ValueError(f"SMTP_PORT must be numeric, got: {port_str}") from err

        timeout_str = os.getenv("SMTP_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS))
        try:
            timeout = float(timeout_str)
        except ValueError as err:
            raise ValueError(f"SMTP_TIMEOUT must be numeric, got: {timeout_str}") from err

        host = os.getenv("SMTP_HOST")
        if not host:
            raise ValueError("SMTP_HOST must be configured")

        return cls(
            host=host,
            port=port,
            username=os.getenv("SMTP_USER", ""),
            password=_resolve_password(),
            encryption=Encryption.coerce(os.getenv("SMTP_ENCRYPTION", "tls")),
            timeout=timeout,
        )


class SessionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    TLS_NEGOTIATING = "tls_negotiating"
    AUTHENTICATED = "authenticated"
    TRANSACTING = "transacting"
    CLOSED = "closed"


class MismatchPolicy(Protocol):
    """Decides what a session does when a reply code is not the expected one."""

    def on_mismatch(self, step: Step, transcript: Transcript) -> None:
        ...


class RecordMismatch:
    """Keep talking to the server; the mismatch stays in the transcript."""

    def on_mismatch(self, step: Step, transcript: Transcript) -> None:
        logger.warning(
            "Unexpected SMTP reply, continuing",
            extra={"step": step.name, "response": step.response.strip()},
        )


class RaiseOnMismatch:
    """Abort the conversation on the first unexpected reply."""

    def on_mismatch(self, step: Step, transcript: Transcript) -> None:
        outcome = step.outcome
        if not isinstance(outcome, Mismatch):
            return
        raise ProtocolMismatch(
            step.name, outcome.expected, outcome.got, step.response, transcript
        )


@dataclass
class SmtpResult:
    success: bool
    message: str
    transcript: Transcript

    def to_outcome(self) -> Outcome:
        return Outcome(
            success=self.success,
            message=self.message,
            raw_result=self.transcript.to_dict(),
        )


def parse_reply(line: str, expected: int) -> Union[Ok, Mismatch]:
    """
    Check one reply line against the expected code.

    The first three characters are the code; the fourth must be a space (or
    the end of the line). A `-` there marks a continuation line, which is
    treated as malformed.
    """
    if not line:
        return Mismatch(expected, None, UNREADABLE_RESPONSE)
    code_text = line[:3]
    code = int(code_text) if len(code_text) == 3 and code_text.isdigit() else None
    separator = line[3:4]
    if code is None or separator not in (" ", "\r", "\n", ""):
        return Mismatch(expected, code, line)
    if code != expected:
        return Mismatch(expected, code, line)
    return Ok(line)


def quote_data(message: str) -> bytes:
    """
    Prepare a message for the DATA phase.

    Line endings become CRLF, a leading `.` on any line is doubled so the
    body cannot end the DATA phase early, and the `<CRLF>.<CRLF>` terminator
    is appended.
    """
    text = re.sub(r"\r\n|\r|\n", CRLF, message)
    text = re.sub(r"(?m)^\.", "..", text)
    if not text.endswith(CRLF):
        text += CRLF
    return (text + "." + CRLF).encode("utf-8")


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class SmtpSession:
    """
    Sends one message per `send()` call over a fresh socket.

    Args:
        config: Server address, credentials and encryption.
        debug: When True (default) the first unexpected reply raises
            ProtocolMismatch. When False the exchange runs to the end and the
            result carries the full transcript.
        policy: Explicit MismatchPolicy; overrides `debug`.
        socket_factory: Opens the TCP connection; defaults to
            socket.create_connection.
        ssl_context: TLS context used for STARTTLS and SMTPS.
        header_builder: Builds the RFC 2822 header block.
    """

    def __init__(
        self,
        config: SmtpConfig,
        *,
        debug: bool = True,
        policy: Optional[MismatchPolicy] = None,
        socket_factory: SocketFactory = socket.create_connection,
        ssl_context: Optional[ssl.SSLContext] = None,
        header_builder: Optional[HeaderBuilder] = None,
    ):
        self.config = config
        self.policy: MismatchPolicy = policy or (RaiseOnMismatch() if debug else RecordMismatch())
        self.header_builder = header_builder or HeaderBuilder()
        self._socket_factory = socket_factory
        self._ssl_context = ssl_context
        self._sock: Any = None
        self._reader: Any = None
        self._transcript = Transcript()
        self.state = SessionState.DISCONNECTED

    def send(self, envelope: MessageEnvelope) -> SmtpResult:
        """
        Deliver `envelope` and return the result with its transcript.

        Raises:
            MissingSender: If the envelope has no sender.
            MissingRecipient: If the envelope has no recipient.
            SmtpConnectionError: If the socket cannot be opened or fails.
            TlsUpgradeError: If STARTTLS or the SMTPS handshake fails.
            ProtocolMismatch: On the first unexpected reply, when the policy
                is RaiseOnMismatch.
        """
        if envelope.sender is None:
            raise MissingSender()
        to_group, cc_group, bcc_group = envelope.partition()
        if not (to_group or cc_group or bcc_group):
            raise MissingRecipient()

        message = self.header_builder.compose(envelope)

        self._transcript = Transcript()
        self.state = SessionState.DISCONNECTED
        self._open()
        try:
            self._expect("connection", 220)
            hostname = self.config.local_hostname or socket.getfqdn()
            self._command("hello", f"HELO {hostname}", 250)

            if self.config.encryption is Encryption.TLS:
                self._starttls(hostname)

            if self.config.username:
                self._command("auth_type", "AUTH LOGIN", 334)
                self._command("user", _b64(self.config.username), 334, sensitive=True)
                self._command("pass", _b64(self.config.password), 235, sensitive=True)
                self.state = SessionState.AUTHENTICATED

            self.state = SessionState.TRANSACTING
            self._command("from", f"MAIL FROM: <{envelope.sender.email}>", 250)
            for step_name, group in (("to", to_group), ("cc", cc_group), ("bcc", bcc_group)):
                for address in group:
                    self._command(step_name, f"RCPT TO: <{address.email}>", 250)

            self._command("data", "DATA", 354)
            self._transmit("send", quote_data(message), 250, "<message>")
            self._command("quit", "QUIT", None)
        finally:
            self._close()

        transcript = self._transcript
        failed = transcript.first_mismatch
        if failed is None:
            result_message = "Email is sent."
        else:
            result_message = f"SMTP step '{failed.name}' failed: {failed.response.strip()}"

        logger.info(
            "SMTP session finished",
            extra={
                "host": self.config.host,
                "port": self.config.port,
                "success": transcript.success,
                "steps": len(transcript),
                "recipients": len(envelope.recipients),
            },
        )
        return SmtpResult(transcript.success, result_message, transcript)

    def _open(self) -> None:
        host, port = self.config.host, self.config.port
        try:
            sock = self._socket_factory((host, port), self.config.timeout)
        except OSError as exc:
            self.state = SessionState.CLOSED
            errstr = exc.strerror or str(exc)
            self._transcript.append(
                Step("connection", "", errstr, Mismatch(220, None, errstr))
            )
            logger.error(
                "Failed to connect to SMTP server",
                extra={"host": host, "port": port, "error": errstr},
            )
            raise SmtpConnectionError(host, port, exc.errno, errstr, self._transcript) from exc

        if self.config.encryption is Encryption.SSL:
            try:
                sock = self._tls_context().wrap_socket(sock, server_hostname=host)
            except (ssl.SSLError, OSError, ValueError) as exc:
                sock.close()
                self.state = SessionState.CLOSED
                raise TlsUpgradeError(
                    f"SSL handshake with {host}:{port} failed: {exc}", self._transcript
                ) from exc

        self._sock = sock
        self._reader = sock.makefile("rb")
        self.state = SessionState.CONNECTED
        logger.debug("Connected to SMTP server", extra={"host": host, "port": port})

    def _starttls(self, hostname: str) -> None:
        step = self._command("tls", "STARTTLS", 220, enforce=False)
        if not step.ok:
            raise TlsUpgradeError(
                f"Server refused STARTTLS: {step.response.strip()}", self._transcript
            )

        self.state = SessionState.TLS_NEGOTIATING
        self._reader.close()
        try:
            self._sock = self._tls_context().wrap_socket(
                self._sock, server_hostname=self.config.host
            )
        except (ssl.SSLError, OSError, ValueError) as exc:
            raise TlsUpgradeError(
                f"TLS negotiation with {self.config.host} failed: {exc}", self._transcript
            ) from exc
        self._reader = self._sock.makefile("rb")
        self.state = SessionState.CONNECTED

        # Anything learned before the upgrade is discarded; greet again.
        self._command("hello", f"HELO {hostname}", 250)

    def _tls_context(self) -> ssl.SSLContext:
        if self._ssl_context is not None:
            return self._ssl_context
        context = ssl.create_default_context()
        if ssl.HAS_TLSv1_2:
            context.minimum_version = ssl.TLSVersion.TLSv1_2
        if not self.config.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _command(
        self,
        name: str,
        command: str,
        expected: Optional[int],
        *,
        sensitive: bool = False,
        enforce: bool = True,
    ) -> Step:
        recorded = REDACTED if sensitive else command
        logger.debug("SMTP >> %s", recorded, extra={"step": name})
        return self._transmit(name, (command + CRLF).encode("utf-8"), expected, recorded, enforce=enforce)

    def _transmit(
        self,
        name: str,
        payload: bytes,
        expected: Optional[int],
        recorded: str,
        *,
        enforce: bool = True,
    ) -> Step:
        try:
            self._sock.sendall(payload)
        except OSError as exc:
            raise self._io_error(exc) from exc
        return self._expect(name, expected, recorded, enforce=enforce)

    def _expect(
        self,
        name: str,
        expected: Optional[int],
        command: str = "",
        *,
        enforce: bool = True,
    ) -> Step:
        try:
            raw = self._reader.readline(MAX_REPLY_LENGTH)
        except OSError as exc:
            raise self._io_error(exc) from exc

        line = raw.decode("utf-8", errors="replace")
        logger.debug("SMTP << %s", line.strip(), extra={"step": name})

        if expected is None:
            outcome: Union[Ok, Mismatch] = Ok(line)
        else:
            outcome = parse_reply(line, expected)
        step = self._transcript.append(
            Step(name, command, line or UNREADABLE_RESPONSE, outcome)
        )
        if enforce and not step.ok:
            self.policy.on_mismatch(step, self._transcript)
        return step

    def _io_error(self, exc: OSError) -> SmtpConnectionError:
        logger.error(
            "SMTP connection failed mid-session",
            extra={"host": self.config.host, "error": str(exc)},
        )
        return SmtpConnectionError(
            self.config.host,
            self.config.port,
            exc.errno,
            exc.strerror or str(exc),
            self._transcript,
        )

    def _close(self) -> None:
        if self._reader is not None:
            with suppress(OSError):
                self._reader.close()
        if self._sock is not None:
            with suppress(OSError):
                self._sock.close()
        self._reader = None
        self._sock = None
        self.state = SessionState.CLOSED


__all__ = [
    "Encryption",
    "MismatchPolicy",
    "RaiseOnMismatch",
    "RecordMismatch",
    "SessionState",
    "SmtpConfig",
    "SmtpResult",
    "SmtpSession",
    "parse_reply",
    "quote_data",
    "split_host",
]
