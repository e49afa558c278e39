"""Tests for reply parsing, DATA quoting, transcripts and SMTP configuration."""

import re

import pytest

from messenger import smtp
from messenger.errors import UnsupportedTransport
from messenger.smtp import Encryption, SmtpConfig, parse_reply, quote_data, split_host
from messenger.transcript import UNREADABLE_RESPONSE, Mismatch, Ok, Step, Transcript


class TestParseReply:
    def test_expected_code(self):
        assert parse_reply("250 OK\r\n", 250) == Ok("250 OK\r\n")

    def test_bare_code_accepted(self):
        assert parse_reply("250\r\n", 250) == Ok("250\r\n")

    def test_other_code(self):
        assert parse_reply("550 No such user\r\n", 250) == Mismatch(250, 550, "550 No such user\r\n")

    def test_continuation_line_is_malformed(self):
        assert parse_reply("250-PIPELINING\r\n", 250) == Mismatch(250, 250, "250-PIPELINING\r\n")

    def test_non_numeric(self):
        assert parse_reply("hello there\r\n", 220).got is None

    def test_empty_line(self):
        assert parse_reply("", 220) == Mismatch(220, None, UNREADABLE_RESPONSE)


class TestQuoteData:
    def test_terminator_appended(self):
        assert quote_data("hello") == b"hello\r\n.\r\n"

    def test_line_endings_normalised(self):
        assert quote_data("a\nb\r\nc\rd\n") == b"a\r\nb\r\nc\r\nd\r\n.\r\n"

    def test_leading_dots_doubled(self):
        assert quote_data("a\n.b\n..c\n.") == b"a\r\n..b\r\n...c\r\n..\r\n.\r\n"

    def test_unstuffing_restores_body(self):
        body = "intro\r\n.\r\n.signature\r\nplain\r\n"

        quoted = quote_data(body).decode("utf-8")

        assert quoted.endswith("\r\n.\r\n")
        assert "\r\n.\r\n" not in quoted[: -len(".\r\n")]
        assert re.sub(r"(?m)^\.\.", ".", quoted[: -len(".\r\n")]) == body

    def test_utf8_encoded(self):
        assert quote_data("café") == "café\r\n.\r\n".encode("utf-8")


class TestTranscript:
    def _step(self, name, response, ok=True):
        outcome = Ok(response) if ok else Mismatch(250, 550, response)
        return Step(name, "", response, outcome)

    def test_success_and_first_mismatch(self):
        transcript = Transcript()
        transcript.append(self._step("connection", "220 hi\r\n"))
        assert transcript.success
        assert transcript.first_mismatch is None

        transcript.append(self._step("to", "550 nope\r\n", ok=False))
        transcript.append(self._step("to", "550 nope again\r\n", ok=False))

        assert not transcript.success
        assert transcript.first_mismatch.response == "550 nope\r\n"
        assert len(transcript) == 3

    def test_to_dict_groups_repeated_steps(self):
        transcript = Transcript()
        transcript.append(self._step("hello", "250 a\r\n"))
        transcript.append(self._step("to", "250 first\r\n"))
        transcript.append(self._step("to", "250 second\r\n"))
        transcript.append(self._step("to", "250 third\r\n"))

        assert transcript.to_dict() == {
            "hello": "250 a",
            "to": ["250 first", "250 second", "250 third"],
        }

    def test_iteration_order(self):
        transcript = Transcript()
        for name in ("connection", "hello", "quit"):
            transcript.append(self._step(name, "ok"))

        assert [step.name for step in transcript] == transcript.names() == ["connection", "hello", "quit"]


class TestSplitHost:
    def test_plain_host(self):
        assert split_host("smtp.test") == ("smtp.test", None)

    @pytest.mark.parametrize(
        "host, encryption",
        [("tls://smtp.test", Encryption.TLS), ("SSL://smtp.test", Encryption.SSL), ("tcp://smtp.test", None)],
    )
    def test_known_schemes(self, host, encryption):
        assert split_host(host) == ("smtp.test", encryption)

    def test_unknown_scheme(self):
        with pytest.raises(UnsupportedTransport, match="udp://"):
            split_host("udp://smtp.test")


class TestSmtpConfig:
    def test_scheme_overrides_encryption(self):
        config = SmtpConfig(host="ssl://smtp.test", port=465, encryption="tls")
        assert config.host == "smtp.test"
        assert config.encryption is Encryption.SSL

    def test_tcp_scheme_keeps_encryption(self):
        config = SmtpConfig(host="tcp://smtp.test", encryption="tls")
        assert config.encryption is Encryption.TLS

    def test_port_coerced(self):
        assert SmtpConfig(host="smtp.test", port="2525").port == 2525

    def test_invalid_port(self):
        with pytest.raises(ValueError, match="SMTP port must be numeric"):
            SmtpConfig(host="smtp.test", port="smtp")

    def test_missing_host(self):
        with pytest.raises(ValueError, match="SMTP host must be configured"):
            SmtpConfig(host="  ")

    def test_unknown_encryption(self):
        with pytest.raises(ValueError, match="Unknown SMTP encryption"):
            SmtpConfig(host="smtp.test", encryption="starttls-please")

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "smtp.test")
        monkeypatch.setenv("SMTP_PORT", "2587")
        monkeypatch.setenv("SMTP_USER", "bot@example.com")
        monkeypatch.setenv("SMTP_PASSWORD", "pw")
        monkeypatch.setenv("SMTP_ENCRYPTION", "ssl")
        monkeypatch.setenv("SMTP_TIMEOUT", "2.5")

        config = SmtpConfig.from_env()

        assert config.host == "smtp.test"
        assert config.port == 2587
        assert config.username == "bot@example.com"
        assert config.password == "pw"
        assert config.encryption is Encryption.SSL
        assert config.timeout == 2.5

    def test_from_env_defaults(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SMTP_HOST", "smtp.test")
        for var in ("SMTP_PORT", "SMTP_USER", "SMTP_PASSWORD", "SMTP_ENCRYPTION", "SMTP_TIMEOUT"):
            monkeypatch.delenv(var, raising=False)
        monkeypatch.setattr(smtp, "SECRET_PATH", str(tmp_path / "missing"))

        config = SmtpConfig.from_env()

        assert config.port == 587
        assert config.encryption is Encryption.TLS
        assert config.password == ""
        assert config.timeout == 5

    def test_from_env_invalid_port(self, monkeypatch):
        monkeypatch.setenv("SMTP_HOST", "smtp.test")
        monkeypatch.setenv("SMTP_PORT", "invalid")

        with pytest.raises(ValueError, match="SMTP_PORT must be numeric"):
            SmtpConfig.from_env()

    def test_from_env_requires_host(self, monkeypatch):
        monkeypatch.delenv("SMTP_HOST", raising=False)
        monkeypatch.delenv("SMTP_PORT", raising=False)
        monkeypatch.delenv("SMTP_TIMEOUT", raising=False)

        with pytest.raises(ValueError, match="SMTP_HOST must be configured"):
            SmtpConfig.from_env()

    @pytest.mark.parametrize("encoding", ["utf-8", "utf-16"])
    def test_password_from_secret_file(self, monkeypatch, tmp_path, encoding):
        """The password falls back to the Docker secret, which may be UTF-16."""
        secret = tmp_path / "smtp_password"
        secret.write_text("from-secret\n", encoding=encoding)
        monkeypatch.setenv("SMTP_HOST", "smtp.test")
        monkeypatch.delenv("SMTP_PASSWORD", raising=False)
        monkeypatch.setattr(smtp, "SECRET_PATH", str(secret))

        assert SmtpConfig.from_env().password == "from-secret"
