"""
The message envelope handed to a transport.

An envelope is built fresh for every send and is immutable afterwards. The
content type is never declared by the caller; it is inferred from the body.
"""

from __future__ import annotations

import re
import textwrap
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .address import Address, AddressBook, is_valid_email, partition_recipients

WRAP_WIDTH = 70
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class ContentType(str, Enum):
    PLAIN_TEXT = "text/plain"
    HTML = "text/html"


def infer_content_type(body: str) -> ContentType:
    """Bodies whose trimmed text starts with '<' are HTML, the rest plain text."""
    return ContentType.HTML if body.strip().startswith("<") else ContentType.PLAIN_TEXT


def wrap_body(body: str, width: int = WRAP_WIDTH) -> str:
    """
    Hard-wrap a plain-text body at `width` columns.

    Lines are broken on whitespace only; words longer than `width` are left
    whole, existing line breaks are kept and other whitespace (tabs, form
    feeds) is left untouched. HTML bodies are returned as-is.
    """
    if infer_content_type(body) is ContentType.HTML:
        return body

    lines = _LINE_BREAK.split(body)
    if len(lines) > 1 and lines[-1] == "":
        lines.pop()

    wrapped: list[str] = []
    for line in lines:
        if len(line) <= width:
            wrapped.append(line)
            continue
        wrapped.extend(
            textwrap.wrap(
                line,
                width=width,
                break_long_words=False,
                break_on_hyphens=False,
                expand_tabs=False,
                replace_whitespace=False,
            )
            or [""]
        )

    text = "\n".join(wrapped)
    if body.endswith(("\n", "\r")):
        text += "\n"
    return text


@dataclass(frozen=True)
class MessageEnvelope:
    """Everything a transport needs to deliver one message."""

    sender: Optional[Address]
    recipients: tuple[Address, ...]
    subject: str
    body: str
    reply_to: Optional[Address] = None

    @property
    def content_type(self) -> ContentType:
        return infer_content_type(self.body)

    @property
    def is_html(self) -> bool:
        return self.content_type is ContentType.HTML

    def partition(self) -> tuple[tuple[Address, ...], tuple[Address, ...], tuple[Address, ...]]:
        """Split recipients into (to, cc, bcc) groups."""
        return partition_recipients(self.recipients)

    @classmethod
    def from_address_book(
        cls,
        book: AddressBook,
        subject: str,
        body: str,
        fallback_sender: Optional[str] = None,
    ) -> "MessageEnvelope":
        """
        Snapshot an AddressBook into a new envelope.

        Args:
            book: Source of sender, recipients and reply-to.
            subject: Message subject.
            body: Message body (plain text or HTML).
            fallback_sender: Address used when the book has no sender, e.g.
                the SMTP login. Ignored unless it is a valid e-mail address.
        """
        sender = book.sender
        if sender is None and fallback_sender and is_valid_email(fallback_sender):
            sender = Address.create(fallback_sender)
        return cls(
            sender=sender,
            recipients=book.recipients,
            subject=subject,
            body=body,
            reply_to=book.reply_to,
        )


__all__ = [
    "ContentType",
    "MessageEnvelope",
    "WRAP_WIDTH",
    "infer_content_type",
    "wrap_body",
]
