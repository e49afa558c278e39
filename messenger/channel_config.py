"""
Channel configuration loader.

This module reads channel definitions from `config/channels.yml` (or any path
given) and builds ready-to-use channel instances from them. The CLI, tests
and library callers should all go through these helpers so configuration is
handled the same way everywhere.

File layout:

    channels:
      ops-mail:
        type: smtp
        enabled: true
        params:
          host: tls://smtp.example.com
          port: 587
          username: ${SMTP_USER}
          password: ${SMTP_PASSWORD}
          sender: alerts@example.com
          recipients:
            - ops@example.com
            - {email: audit@example.com, type: bcc}
          subject: Alert
      team-chat:
        type: slack_webhook
        params:
          webhook: ${SLACK_WEBHOOK}

`${VAR}` references in string values are expanded from the environment. An
enabled channel that references an unset variable is rejected; disabled
channels keep the reference as written.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .base import Channel, MailChannel
from .channels import (
    LineNotifyChannel,
    MailgunChannel,
    RocketChatChannel,
    SendgridChannel,
    SlackChannel,
    SlackWebhookChannel,
    SmtpChannel,
    TelegramChannel,
)
from .smtp import SmtpConfig

logger = logging.getLogger(__name__)

HTTP_CHANNEL_TYPES: dict[str, type[Channel]] = {
    "mailgun": MailgunChannel,
    "sendgrid": SendgridChannel,
    "slack": SlackChannel,
    "slack_webhook": SlackWebhookChannel,
    "telegram": TelegramChannel,
    "line_notify": LineNotifyChannel,
    "rocketchat": RocketChatChannel,
}
CHANNEL_TYPES = ("smtp", *HTTP_CHANNEL_TYPES)
MAIL_PARAMS = ("sender", "recipients", "reply_to", "subject")
_VAR_REFERENCE = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


@dataclass
class ChannelConfig:
    """Configuration for a single channel."""

    type: str
    enabled: bool = True
    params: dict[str, Any] = field(default_factory=dict)


def _project_root() -> Path:
    """Return the project root path based on this file's location."""
    return Path(__file__).resolve().parent.parent


def default_config_path() -> Path:
    """Return `config/channels.yml` under the project root."""
    return _project_root() / "config" / "channels.yml"


def _expand(value: Any, channel_name: str, strict: bool = True) -> Any:
    """
    Expand `${VAR}` references from the environment, recursively.

    Raises:
        ValueError: If `strict` and a referenced variable is not set.
    """
    if isinstance(value, str):
        if strict:
            missing = [name for name in _VAR_REFERENCE.findall(value) if name not in os.environ]
            if missing:
                raise ValueError(
                    f"Environment variable(s) {', '.join(missing)} referenced by channel "
                    f"'{channel_name}' are not set"
                )
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [_expand(item, channel_name, strict) for item in value]
    if isinstance(value, Mapping):
        return {key: _expand(item, channel_name, strict) for key, item in value.items()}
    return value


def load_channels_config(config_path: str | None = None) -> dict[str, ChannelConfig]:
    """
    Load channel configuration from a YAML file.

    Args:
        config_path: Optional override for the config file path. When omitted,
            the function reads `config/channels.yml` relative to the project root.

    Returns:
        Dictionary mapping channel names to `ChannelConfig` objects.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If the YAML file cannot be parsed or has invalid structure,
            or an enabled channel references an unset environment variable.
    """
    path = Path(config_path) if config_path else default_config_path()
    if not path.exists():
        logger.error("Channels configuration file not found: %s", path)
        raise FileNotFoundError(f"Channels configuration file not found: {path}")

    try:
        with path.open("r", encoding="utf-8") as handle:
            raw_config: Mapping[str, Any] | None = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        logger.error("Failed to parse channels configuration: %s", exc)
        raise ValueError(f"Invalid YAML in channels configuration: {exc}") from exc

    if not raw_config:
        logger.warning("Channels configuration file is empty: %s", path)
        return {}

    channels_section = raw_config.get("channels")
    if not isinstance(channels_section, Mapping):
        raise ValueError("`channels` section is missing or invalid in channels configuration")

    channels: dict[str, ChannelConfig] = {}
    for channel_name, channel_data in channels_section.items():
        if not isinstance(channel_data, Mapping):
            raise ValueError(f"Invalid channel configuration for '{channel_name}'")

        channel_type = channel_data.get("type")
        if not isinstance(channel_type, str) or channel_type.strip().lower() not in CHANNEL_TYPES:
            raise ValueError(
                f"Channel '{channel_name}' must define `type` as one of: {', '.join(CHANNEL_TYPES)}"
            )

        enabled = bool(channel_data.get("enabled", True))
        params = channel_data.get("params", {}) or {}
        if not isinstance(params, Mapping):
            raise ValueError(f"`params` for channel '{channel_name}' must be a mapping")

        channels[str(channel_name)] = ChannelConfig(
            type=channel_type.strip().lower(),
            enabled=enabled,
            params=_expand(dict(params), str(channel_name), strict=enabled),
        )

    logger.info(
        "Loaded channels configuration",
        extra={
            "channels_count": len(channels),
            "enabled_channels": [name for name, cfg in channels.items() if cfg.enabled],
        },
    )
    return channels


def _configure_mail(channel: MailChannel, mail_params: Mapping[str, Any]) -> None:
    sender = mail_params.get("sender")
    if isinstance(sender, Mapping):
        channel.set_sender(sender.get("email"), sender.get("name"))
    elif sender:
        channel.set_sender(sender)

    reply_to = mail_params.get("reply_to")
    if isinstance(reply_to, Mapping):
        channel.add_reply_to(reply_to.get("email"), reply_to.get("name"))
    elif reply_to:
        channel.add_reply_to(reply_to)

    recipients = mail_params.get("recipients") or []
    if isinstance(recipients, str):
        recipients = [r.strip() for r in recipients.split(",") if r.strip()]
    channel.set_recipients(
        entry if isinstance(entry, Mapping) else {"email": entry} for entry in recipients
    )

    if mail_params.get("subject"):
        channel.set_subject(str(mail_params["subject"]))


def build_channel(config: ChannelConfig, debug: bool = True) -> Channel:
    """
    Construct the channel described by `config`.

    SMTP channels accept either the SmtpConfig fields (host, port, username,
    password, encryption, timeout, local_hostname, verify_tls) or a `preset`
    name with username and password. Mail channels additionally accept
    sender, recipients, reply_to and subject.

    Raises:
        ValueError: If the type is unknown or the params do not fit it.
        InvalidAddress: If a configured address is invalid.
    """
    params = dict(config.params)
    mail_params = {key: params.pop(key) for key in MAIL_PARAMS if key in params}

    try:
        if config.type == "smtp":
            preset = params.pop("preset", None)
            if preset:
                channel: Channel = SmtpChannel.preset(
                    preset,
                    params.pop("username", ""),
                    params.pop("password", ""),
                    debug=debug,
                    **params,
                )
            else:
                channel = SmtpChannel(SmtpConfig(**params), debug=debug)
        elif config.type in HTTP_CHANNEL_TYPES:
            channel = HTTP_CHANNEL_TYPES[config.type](**params, debug=debug)
        else:
            raise ValueError(f"Unknown channel type: {config.type!r}")
    except TypeError as err:
        raise ValueError(f"Invalid params for channel type '{config.type}': {err}") from err

    if mail_params:
        if not isinstance(channel, MailChannel):
            raise ValueError(
                f"Channel type '{config.type}' does not accept {', '.join(sorted(mail_params))}"
            )
        _configure_mail(channel, mail_params)

    return channel


def build_channels(configs: Mapping[str, ChannelConfig], debug: bool = True) -> dict[str, Channel]:
    """Build every enabled channel, keyed by its configured name."""
    channels = {
        name: build_channel(config, debug=debug)
        for name, config in configs.items()
        if config.enabled
    }
    logger.info("Built channels", extra={"channels": list(channels)})
    return channels


__all__ = [
    "CHANNEL_TYPES",
    "ChannelConfig",
    "build_channel",
    "build_channels",
    "default_config_path",
    "load_channels_config",
]
