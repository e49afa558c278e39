"""
Pytest configuration and shared fixtures

This file contains test fixtures that can be used across all tests.
Fixtures are reusable components that set up test preconditions.

The SMTP tests never touch the network: `scripted_socket` hands the session
a socket double that answers every command with the next scripted reply.

Learn more: https://docs.pytest.org/en/stable/fixture.html
"""

import ssl

import pytest

from messenger.address import AddressBook
from messenger.headers import HeaderBuilder
from messenger.smtp import SmtpConfig

FIXED_DATE = "Thu, 01 Jan 2026 09:00:00 +0000"


class ScriptedReader:
    """Line reader returned by ScriptedSocket.makefile()."""

    def __init__(self, sock):
        self._sock = sock
        self.closed = False

    def readline(self, limit=-1):
        if not self._sock.replies:
            return b""
        return self._sock.replies.pop(0).encode("utf-8")

    def close(self):
        self.closed = True


class ScriptedSocket:
    """Socket double: records what was sent and replays canned server lines."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.sent = []
        self.closed = False
        self.address = None
        self.timeout = None

    def sendall(self, data):
        self.sent.append(data.decode("utf-8"))

    def makefile(self, mode="rb"):
        return ScriptedReader(self)

    def close(self):
        self.closed = True

    @property
    def commands(self):
        """Every single-line command sent, without the trailing CRLF."""
        return [line[:-2] for line in self.sent if line.count("\r\n") == 1]


class FakeTlsContext:
    """Stands in for ssl.SSLContext; `fail=True` simulates a bad handshake."""

    def __init__(self, fail=False):
        self.fail = fail
        self.wrapped = []

    def wrap_socket(self, sock, server_hostname=None):
        if self.fail:
            raise ssl.SSLError("handshake failure")
        self.wrapped.append((sock, server_hostname))
        return sock


@pytest.fixture(scope="function")
def scripted_socket():
    """
    Factory building a ScriptedSocket and the socket_factory that returns it.

    Usage:
        sock, factory = scripted_socket("220 ready\\r\\n", "250 ok\\r\\n", ...)
        SmtpSession(config, socket_factory=factory)
    """

    def _make(*replies):
        sock = ScriptedSocket(replies)

        def factory(address, timeout):
            sock.address = address
            sock.timeout = timeout
            return sock

        return sock, factory

    return _make


@pytest.fixture(scope="function")
def tls_context():
    """Factory for FakeTlsContext instances."""
    return FakeTlsContext


@pytest.fixture(scope="function")
def smtp_config() -> SmtpConfig:
    """Plain (unencrypted) SMTP config with credentials."""
    return SmtpConfig(
        host="smtp.test",
        port=25,
        username="alerts@example.com",
        password="s3cret",
        local_hostname="client.test",
    )


@pytest.fixture(scope="function")
def header_builder() -> HeaderBuilder:
    """HeaderBuilder with a fixed Date header."""
    return HeaderBuilder(date_factory=lambda: FIXED_DATE)


@pytest.fixture(scope="function")
def address_book() -> AddressBook:
    """
    Address book with a sender and one recipient of each role.

    Returns:
        AddressBook: alerts@example.com sending to ops (to), lead (cc) and
        audit (bcc).
    """
    book = AddressBook()
    book.set_sender("alerts@example.com", "Alerts")
    book.add_recipient("ops@example.com")
    book.add_recipient("lead@example.com", "Team Lead", role="cc")
    book.add_recipient("audit@example.com", role="bcc")
    return book


@pytest.fixture(scope="function")
def happy_replies() -> list[str]:
    """Server replies for an authenticated send to three recipients."""
    return [
        "220 smtp.test ESMTP ready\r\n",
        "250 smtp.test\r\n",
        "334 VXNlcm5hbWU6\r\n",
        "334 UGFzc3dvcmQ6\r\n",
        "235 2.7.0 Authentication successful\r\n",
        "250 2.1.0 Sender OK\r\n",
        "250 2.1.5 Recipient OK\r\n",
        "250 2.1.5 Recipient OK\r\n",
        "250 2.1.5 Recipient OK\r\n",
        "354 End data with <CR><LF>.<CR><LF>\r\n",
        "250 2.0.0 Queued as 12345\r\n",
        "221 2.0.0 Bye\r\n",
    ]


# Mark tests based on their type for selective running
def pytest_configure(config):
    """
    Register custom pytest markers.

    This allows us to run specific test categories:
    - pytest -m unit        (run only unit tests)
    - pytest -m integration (run only integration tests)
    - pytest -m "not slow"  (skip slow tests)
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test (isolated, fast)"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running (>1 second)"
    )
