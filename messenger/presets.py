"""
Named SMTP presets.

Each preset returns a filled-in SmtpConfig for a well-known provider; the
result is used with the generic SmtpSession / SmtpChannel.

Gmail notice: Google only accepts scripted SMTP logins from accounts that
allow them (an app password, or "less secure app access" on older accounts).
"""

from __future__ import annotations

from typing import Callable, Union

from .base import DEFAULT_TIMEOUT_SECONDS
from .smtp import Encryption, SmtpConfig

GMAIL_HOST = "smtp.gmail.com"
MAILGUN_HOST = "smtp.mailgun.org"

_GMAIL_PORTS = {
    Encryption.SSL: 465,
    Encryption.TLS: 587,
}


def gmail_config(
    username: str,
    password: str,
    encryption: Union[Encryption, str] = Encryption.SSL,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> SmtpConfig:
    """
    Gmail over SMTPS (port 465) or STARTTLS (port 587).

    Raises:
        ValueError: If `encryption` is neither ssl nor tls.
    """
    mode = Encryption.coerce(encryption)
    if mode not in _GMAIL_PORTS:
        raise ValueError("Gmail requires 'ssl' or 'tls' encryption")
    return SmtpConfig(
        host=GMAIL_HOST,
        port=_GMAIL_PORTS[mode],
        username=username,
        password=password,
        encryption=mode,
        timeout=timeout,
    )


def mailgun_config(
    username: str,
    password: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> SmtpConfig:
    """Mailgun's SMTP relay on port 587 with STARTTLS."""
    return SmtpConfig(
        host=MAILGUN_HOST,
        port=587,
        username=username,
        password=password,
        encryption=Encryption.TLS,
        timeout=timeout,
    )


PRESETS: dict[str, Callable[..., SmtpConfig]] = {
    "gmail": gmail_config,
    "mailgun": mailgun_config,
}


def smtp_preset(name: str, username: str, password: str, **kwargs) -> SmtpConfig:
    """
    Look up a preset by name and build its config.

    Raises:
        ValueError: If no preset is registered under `name`.
    """
    try:
        factory = PRESETS[name.lower()]
    except KeyError as err:
        raise ValueError(
            f"Unknown SMTP preset '{name}'; available: {', '.join(sorted(PRESETS))}"
        ) from err
    return factory(username, password, **kwargs)


__all__ = ["PRESETS", "gmail_config", "mailgun_config", "smtp_preset"]
