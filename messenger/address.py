"""
Sender and recipient identities for the mail channels.

Addresses are validated when they are created, so an AddressBook only ever
holds syntactically valid e-mail addresses. When no display name is supplied,
one is derived from the local part of the address.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from .errors import InvalidAddress

logger = logging.getLogger(__name__)

_ATOM = r"[A-Za-z0-9!#$%&'*+/=?^_`{|}~-]+"
_LABEL = r"[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?"
EMAIL_PATTERN = re.compile(rf"{_ATOM}(?:\.{_ATOM})*@{_LABEL}(?:\.{_LABEL})*")

MAX_EMAIL_LENGTH = 254
MAX_LOCAL_PART_LENGTH = 64

# Characters that could break out of a quoted display name in a header.
_INJECTION_CHARS = "\"'<>/\\"
_STRIP_TABLE = str.maketrans("", "", _INJECTION_CHARS + "\r\n")


class Role(str, Enum):
    """How a recipient is addressed."""

    TO = "to"
    CC = "cc"
    BCC = "bcc"

    @classmethod
    def coerce(cls, value: Union["Role", str, None]) -> "Role":
        """Accept a Role or its string value ('to', 'cc', 'bcc')."""
        if value is None:
            return cls.TO
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as err:
            raise ValueError(f"Unknown recipient type: {value!r}") from err


def is_valid_email(email: Any) -> bool:
    """Return True when `email` looks like local@domain."""
    if not isinstance(email, str) or not email:
        return False
    if len(email) > MAX_EMAIL_LENGTH or email.count("@") != 1:
        return False
    if len(email.split("@", 1)[0]) > MAX_LOCAL_PART_LENGTH:
        return False
    return EMAIL_PATTERN.fullmatch(email) is not None


def pretty_name(email: str) -> str:
    """
    Derive a display name from the local part of an e-mail address.

    Digits are dropped, dots become spaces, each word gets an upper-case first
    letter and header-breaking characters are removed.

    Example:
        >>> pretty_name("john.doe123@example.com")
        'John Doe'
    """
    name = email.split("@", 1)[0]
    name = re.sub(r"[0-9]+", "", name)
    name = name.replace(".", " ")
    name = " ".join(word[:1].upper() + word[1:] for word in name.split())
    return name.translate(_STRIP_TABLE)


def sanitize_name(name: str) -> str:
    """Remove quote, angle-bracket, slash and line-break characters from a name."""
    return name.translate(_STRIP_TABLE).strip()


@dataclass(frozen=True)
class Address:
    """A validated e-mail identity."""

    email: str
    name: str
    role: Role = Role.TO

    @classmethod
    def create(
        cls,
        email: str,
        name: Optional[str] = None,
        role: Union[Role, str, None] = Role.TO,
    ) -> "Address":
        """
        Validate `email` and build an Address.

        Raises:
            InvalidAddress: If the address fails the syntax check.
        """
        if isinstance(email, str):
            email = email.strip()
        if not is_valid_email(email):
            raise InvalidAddress(email)
        display = sanitize_name(name) if name else pretty_name(email)
        return cls(email=email, name=display, role=Role.coerce(role))


class AddressBook:
    """
    Sender, recipients and reply-to identity for one mail channel.

    Recipients keep their insertion order; `partition()` splits them by role
    without reordering.
    """

    def __init__(self) -> None:
        self._sender: Optional[Address] = None
        self._reply_to: Optional[Address] = None
        self._recipients: list[Address] = []

    @property
    def sender(self) -> Optional[Address]:
        return self._sender

    @property
    def reply_to(self) -> Optional[Address]:
        return self._reply_to

    @property
    def recipients(self) -> tuple[Address, ...]:
        return tuple(self._recipients)

    def add_recipient(
        self,
        email: str,
        name: Optional[str] = None,
        role: Union[Role, str, None] = Role.TO,
    ) -> Address:
        """Validate and append a recipient. Role defaults to To."""
        address = Address.create(email, name, role)
        self._recipients.append(address)
        logger.debug(
            "Recipient added",
            extra={"email": address.email, "role": address.role.value},
        )
        return address

    def set_recipients(self, recipients: Iterable[Mapping[str, Any]]) -> None:
        """
        Replace the recipient list.

        Each entry is a mapping with `email` and optional `name` and `type`
        ('to', 'cc' or 'bcc'). Every entry is validated before the list is
        replaced, so a bad entry leaves the book untouched.

        Raises:
            InvalidAddress: If any entry carries an invalid address.
        """
        parsed = []
        for index, entry in enumerate(recipients):
            email = entry.get("email")
            if not is_valid_email(email):
                raise InvalidAddress(email, f"recipient #{index}")
            parsed.append(Address.create(email, entry.get("name"), entry.get("type")))
        self._recipients = parsed

    def set_sender(self, email: str, name: Optional[str] = None) -> Address:
        """Validate and set the sender. The last call wins."""
        self._sender = Address.create(email, name)
        return self._sender

    def add_reply_to(self, email: str, name: Optional[str] = None) -> Address:
        """Validate and set the Reply-To identity."""
        self._reply_to = Address.create(email, name)
        return self._reply_to

    def partition(self) -> tuple[tuple[Address, ...], tuple[Address, ...], tuple[Address, ...]]:
        """Split recipients into (to, cc, bcc), keeping insertion order."""
        return partition_recipients(self._recipients)

    def clear(self) -> None:
        """Drop all recipients. Sender and reply-to are kept."""
        self._recipients = []

    def __len__(self) -> int:
        return len(self._recipients)

    def __repr__(self) -> str:
        sender = self._sender.email if self._sender else None
        return f"AddressBook(sender={sender!r}, recipients={len(self._recipients)})"


def partition_recipients(
    recipients: Iterable[Address],
) -> tuple[tuple[Address, ...], tuple[Address, ...], tuple[Address, ...]]:
    """Split addresses into (to, cc, bcc) groups, preserving order."""
    groups: dict[Role, list[Address]] = {Role.TO: [], Role.CC: [], Role.BCC: []}
    for address in recipients:
        groups[address.role].append(address)
    return tuple(groups[Role.TO]), tuple(groups[Role.CC]), tuple(groups[Role.BCC])


__all__ = [
    "Address",
    "AddressBook",
    "Role",
    "is_valid_email",
    "partition_recipients",
    "pretty_name",
    "sanitize_name",
]
