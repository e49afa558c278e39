"""Channel implementations.

Available channels:
- SmtpChannel: built-in SMTP client (smtp_channel.py)
- MailgunChannel, SendgridChannel: transactional e-mail APIs
- SlackChannel, SlackWebhookChannel, TelegramChannel, LineNotifyChannel,
  RocketChatChannel: chat and webhook APIs
"""

from .http import HttpChannel
from .line_notify import LineNotifyChannel
from .mailgun import MailgunChannel
from .rocketchat import RocketChatChannel
from .sendgrid import SendgridChannel
from .slack import SlackChannel, SlackWebhookChannel
from .smtp_channel import SmtpChannel
from .telegram import TelegramChannel

__all__ = [
    "HttpChannel",
    "LineNotifyChannel",
    "MailgunChannel",
    "RocketChatChannel",
    "SendgridChannel",
    "SlackChannel",
    "SlackWebhookChannel",
    "SmtpChannel",
    "TelegramChannel",
]
