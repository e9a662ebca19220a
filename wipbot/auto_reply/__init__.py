"""
Command handling for wip-bot.

Provides:
- Command detection and parsing
- Static content tables for bursts
"""

from wipbot.auto_reply.commands import (
    AddressMode,
    CommandKind,
    IncomingCommand,
    get_help,
    parse_command,
    parse_count,
)
from wipbot.auto_reply.content import CANNED_SPAM, SPAM_MESSAGES, STICKER_CAPTIONS, pick

__all__ = [
    # Commands
    "AddressMode",
    "CommandKind",
    "IncomingCommand",
    "get_help",
    "parse_command",
    "parse_count",
    # Content
    "CANNED_SPAM",
    "SPAM_MESSAGES",
    "STICKER_CAPTIONS",
    "pick",
]
