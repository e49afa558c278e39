"""Messenger package.

Sends short notifications through e-mail and chat services.

Main components:
- SmtpSession: Built-in SMTP client returning a step-by-step Transcript
- AddressBook / MessageEnvelope: Sender, recipients and the message to send
- Channel: Abstract base class for all delivery channels (in channels/)
- Notifier: Fans one message out to several channels
- load_channels_config / build_channels: YAML-driven channel setup
"""

from .address import Address, AddressBook, Role, is_valid_email, pretty_name
from .base import Channel, MailChannel, NotificationChannel, Notifier, Outcome
from .channel_config import ChannelConfig, build_channel, build_channels, load_channels_config
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
from .envelope import ContentType, MessageEnvelope
from .errors import (
    ChannelError,
    InvalidAddress,
    MessengerError,
    MissingRecipient,
    MissingSender,
    ProtocolMismatch,
    SmtpConnectionError,
    TlsUpgradeError,
    UnsupportedTransport,
)
from .headers import HeaderBuilder
from .presets import gmail_config, mailgun_config, smtp_preset
from .smtp import Encryption, SmtpConfig, SmtpResult, SmtpSession
from .transcript import Mismatch, Ok, Step, Transcript

__all__ = [
    "Address",
    "AddressBook",
    "Channel",
    "ChannelConfig",
    "ChannelError",
    "ContentType",
    "Encryption",
    "HeaderBuilder",
    "InvalidAddress",
    "LineNotifyChannel",
    "MailChannel",
    "MailgunChannel",
    "MessageEnvelope",
    "MessengerError",
    "Mismatch",
    "MissingRecipient",
    "MissingSender",
    "NotificationChannel",
    "Notifier",
    "Ok",
    "Outcome",
    "ProtocolMismatch",
    "Role",
    "RocketChatChannel",
    "SendgridChannel",
    "SlackChannel",
    "SlackWebhookChannel",
    "SmtpChannel",
    "SmtpConfig",
    "SmtpConnectionError",
    "SmtpResult",
    "SmtpSession",
    "Step",
    "TelegramChannel",
    "TlsUpgradeError",
    "Transcript",
    "UnsupportedTransport",
    "build_channel",
    "build_channels",
    "gmail_config",
    "is_valid_email",
    "load_channels_config",
    "mailgun_config",
    "pretty_name",
    "smtp_preset",
]
__version__ = "0.1.0"
