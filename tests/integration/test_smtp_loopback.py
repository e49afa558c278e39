"""
Integration tests for the SMTP client against a real socket.

A tiny scripted SMTP server runs in a background thread on 127.0.0.1; the
client connects to it over TCP exactly as it would to a production relay.
No external services are needed.
"""

import socket
import threading

import pytest

from messenger.channels import SmtpChannel
from messenger.errors import ProtocolMismatch, SmtpConnectionError
from messenger.smtp import SmtpConfig

pytestmark = pytest.mark.integration


class LoopbackSmtpServer:
    """Accepts one connection and answers it like a permissive relay."""

    def __init__(self, rcpt_reply="250 2.1.5 OK"):
        self.rcpt_reply = rcpt_reply
        self.commands = []
        self.data = b""
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self._listener.settimeout(5)
        self.port = self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def __enter__(self):
        self._thread.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._thread.join(timeout=5)
        self._listener.close()

    def _serve(self):
        conn, _ = self._listener.accept()
        with conn, conn.makefile("rb") as reader:
            conn.sendall(b"220 localhost ESMTP loopback\r\n")
            while True:
                line = reader.readline()
                if not line:
                    return
                command = line.decode("utf-8").rstrip("\r\n")
                self.commands.append(command)
                verb = command.split(" ", 1)[0].upper()
                if verb == "HELO":
                    conn.sendall(b"250 localhost\r\n")
                elif verb == "MAIL":
                    conn.sendall(b"250 2.1.0 OK\r\n")
                elif verb == "RCPT":
                    conn.sendall(self.rcpt_reply.encode("utf-8") + b"\r\n")
                elif verb == "DATA":
                    conn.sendall(b"354 End data with <CR><LF>.<CR><LF>\r\n")
                    chunks = []
                    for data_line in iter(reader.readline, b""):
                        if data_line == b".\r\n":
                            break
                        chunks.append(data_line)
                    self.data = b"".join(chunks)
                    conn.sendall(b"250 2.0.0 Queued\r\n")
                elif verb == "QUIT":
                    conn.sendall(b"221 2.0.0 Bye\r\n")
                    return
                else:
                    conn.sendall(b"502 5.5.2 Command not recognized\r\n")


def _channel(port, debug=True):
    config = SmtpConfig(host="127.0.0.1", port=port, local_hostname="client.test", timeout=5)
    channel = SmtpChannel(config, debug=debug)
    channel.set_sender("alerts@example.com", "Alerts")
    channel.add_recipient("ops@example.com")
    channel.add_recipient("audit@example.com", role="bcc")
    channel.set_subject("Loopback check")
    return channel


def test_message_delivered_over_tcp():
    with LoopbackSmtpServer() as server:
        outcome = _channel(server.port).send("First line\n.leading dot\nLast line")

    assert outcome.success is True
    assert outcome.raw_result["send"] == "250 2.0.0 Queued"
    assert server.commands[:4] == [
        "HELO client.test",
        "MAIL FROM: <alerts@example.com>",
        "RCPT TO: <ops@example.com>",
        "RCPT TO: <audit@example.com>",
    ]
    assert server.commands[-1] == "QUIT"

    data = server.data.decode("utf-8")
    assert data.startswith('From: "Alerts" <alerts@example.com>\r\n')
    assert "Subject: Loopback check\r\n" in data
    assert "audit@example.com" not in data
    assert "\r\n..leading dot\r\n" in data


def test_rejected_recipient_soft_mode():
    with LoopbackSmtpServer(rcpt_reply="550 5.1.1 No such user") as server:
        outcome = _channel(server.port, debug=False).send("hello")

    assert outcome.success is False
    assert outcome.message == "SMTP step 'to' failed: 550 5.1.1 No such user"
    assert server.commands[-1] == "QUIT"


def test_rejected_recipient_debug_mode():
    with LoopbackSmtpServer(rcpt_reply="550 5.1.1 No such user") as server:
        with pytest.raises(ProtocolMismatch) as exc_info:
            _channel(server.port).send("hello")

    assert exc_info.value.step == "to"
    assert "DATA" not in server.commands


def test_connection_refused():
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(("127.0.0.1", 0))
    port = probe.getsockname()[1]
    probe.close()

    with pytest.raises(SmtpConnectionError) as exc_info:
        _channel(port).send("hello")

    assert exc_info.value.port == port
