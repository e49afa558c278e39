"""
RFC 2822 header block assembly.

Bcc recipients are never written to the header block; they only show up as
RCPT TO commands at the SMTP layer.
"""

from __future__ import annotations

from email.header import Header
from email.utils import formatdate
from typing import Callable, Iterable

from .address import Address
from .envelope import MessageEnvelope, wrap_body
from .errors import MissingSender

CRLF = "\r\n"
DEFAULT_MAILER_TAG = "Messenger"


def _encode_word(text: str) -> str:
    """RFC 2047-encode `text` when it is not plain ASCII."""
    if text.isascii():
        return text
    return Header(text, "utf-8").encode(linesep=CRLF)


def format_address(address: Address) -> str:
    """Render an address as `"Display Name" <email>`."""
    if not address.name:
        return f"<{address.email}>"
    if not address.name.isascii():
        return f"{_encode_word(address.name)} <{address.email}>"
    return f'"{address.name}" <{address.email}>'


def format_address_list(addresses: Iterable[Address]) -> str:
    return ", ".join(format_address(address) for address in addresses)


class HeaderBuilder:
    """
    Builds the header block for a MessageEnvelope.

    Args:
        mailer_tag: Value of the X-Mailer header.
        date_factory: Returns the Date header value; defaults to the current
            local time in RFC 2822 format.
    """

    def __init__(
        self,
        mailer_tag: str = DEFAULT_MAILER_TAG,
        date_factory: Callable[[], str] = lambda: formatdate(localtime=True),
    ):
        self.mailer_tag = mailer_tag
        self.date_factory = date_factory

    def build(self, envelope: MessageEnvelope) -> str:
        """
        Return the CRLF-joined header block, terminated by the blank line.

        Raises:
            MissingSender: If the envelope has no sender.
        """
        sender = envelope.sender
        if sender is None:
            raise MissingSender()

        to_group, cc_group, _ = envelope.partition()
        reply_to = envelope.reply_to or sender
        subject = envelope.subject.replace("\r", " ").replace("\n", " ")

        lines = [
            f"From: {format_address(sender)}",
            f"Date: {self.date_factory()}",
        ]
        if to_group:
            lines.append(f"To: {format_address_list(to_group)}")
        if cc_group:
            lines.append(f"Cc: {format_address_list(cc_group)}")
        lines.extend([
            f"Subject: {_encode_word(subject)}",
            f"Reply-To: {format_address(reply_to)}",
            f"Return-Path: <{sender.email}>",
            f"X-Mailer: {self.mailer_tag}",
            "MIME-Version: 1.0",
            f"Content-type: {envelope.content_type.value}; charset=utf-8",
        ])
        return CRLF.join(lines) + CRLF + CRLF

    def compose(self, envelope: MessageEnvelope) -> str:
        """Header block followed by the (wrapped, if plain text) body."""
        return self.build(envelope) + wrap_body(envelope.body)


__all__ = ["CRLF", "HeaderBuilder", "format_address", "format_address_list"]
