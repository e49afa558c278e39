"""
Messenger - Command Line Entry Point

Sends one message through the configured channels and prints each channel's
result.

Usage:
    python -m messenger.main --message "Disk almost full" [OPTIONS]

Options:
    --message TEXT        Message body (plain text, or HTML starting with '<')
    --subject TEXT        Subject for e-mail channels
    --config PATH         Channels YAML file (default: config/channels.yml if present)
    --channel NAME        Only use this configured channel (repeatable)
    --to/--cc/--bcc EMAIL Extra recipients for e-mail channels (repeatable)
    --format FORMAT       Result output: plaintext (default) or json
    --soft-fail           Record unexpected replies instead of stopping at the first one
    --verbose             Enable debug logging

Without a channels file, a single SMTP channel is built from the SMTP_*
environment variables; NOTIFY_TO and SMTP_FROM supply recipients and sender.

Exit Codes:
    0: Every channel delivered the message
    1: At least one channel failed
    2: Fatal error (bad configuration, etc.)
"""

import argparse
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv

from .base import Channel, MailChannel, Notifier
from .channel_config import build_channels, default_config_path, load_channels_config
from .channels import SmtpChannel

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments for the messenger CLI.

    Returns:
        argparse.Namespace: Parsed command-line arguments.

    Raises:
        SystemExit: If required arguments are missing or invalid.
    """
    parser = argparse.ArgumentParser(
        description='Send a message through configured channels.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--message', required=True, help='Message body')
    parser.add_argument('--subject', default=None, help='Subject for e-mail channels')
    parser.add_argument('--config', default=None, help='Path to channels YAML file')
    parser.add_argument('--channel', action='append', default=[], help='Configured channel name to use')
    parser.add_argument('--to', action='append', default=[], help='Extra To recipient')
    parser.add_argument('--cc', action='append', default=[], help='Extra Cc recipient')
    parser.add_argument('--bcc', action='append', default=[], help='Extra Bcc recipient')
    parser.add_argument('--format', choices=['plaintext', 'json'], default='plaintext', help='Result output format')
    parser.add_argument('--soft-fail', action='store_true', help='Do not stop at the first unexpected reply')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    return parser.parse_args(argv)


def _env_smtp_channel(debug: bool) -> SmtpChannel:
    """
    SMTP channel from environment variables (SMTP_*, SMTP_FROM, NOTIFY_TO).

    Raises:
        ValueError: If SMTP_HOST is not configured.
    """
    channel = SmtpChannel.from_env(debug=debug)
    sender = os.getenv("SMTP_FROM")
    if sender:
        channel.set_sender(sender)
    for recipient in os.getenv("NOTIFY_TO", "").split(","):
        if recipient.strip():
            channel.add_recipient(recipient.strip())
    return channel


def build_notifier(args: argparse.Namespace) -> Notifier:
    """
    Build a Notifier from the channels file, or from the environment.

    Raises:
        ValueError: If the configuration is invalid or selects no channel.
        FileNotFoundError: If an explicit --config path does not exist.
    """
    debug = not args.soft_fail
    config_path = args.config
    if config_path is None and default_config_path().exists():
        config_path = str(default_config_path())

    channels: dict[str, Channel]
    if config_path:
        configs = load_channels_config(config_path)
        if args.channel:
            missing = [name for name in args.channel if name not in configs]
            if missing:
                raise ValueError(f"Unknown channel(s): {', '.join(missing)}")
            configs = {name: configs[name] for name in args.channel}
        channels = build_channels(configs, debug=debug)
    else:
        channels = {"smtp": _env_smtp_channel(debug)}

    if not channels:
        raise ValueError("No enabled channel to send through")

    for channel in channels.values():
        if not isinstance(channel, MailChannel):
            continue
        if args.subject is not None:
            channel.set_subject(args.subject)
        for role in ('to', 'cc', 'bcc'):
            for email in getattr(args, role):
                channel.add_recipient(email, role=role)

    return Notifier(channels)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the messenger CLI.

    Returns:
        int: Exit code (0 success, 1 some channel failed, 2 fatal error).
    """
    args = parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        notifier = build_notifier(args)
    except Exception as e:
        logger.error(f'Failed to configure channels: {e}', exc_info=True)
        return 2

    outcomes = notifier.notify(args.message)
    for name, outcome in outcomes.items():
        print(f"=== {name} ===")
        print(outcome.render(args.format))

    failed = [name for name, outcome in outcomes.items() if not outcome.success]
    if failed:
        logger.error('Delivery failed for: %s', ', '.join(failed))
        return 1
    logger.info('Message sent through %d channel(s)', len(outcomes))
    return 0


if __name__ == '__main__':
    sys.exit(main())
