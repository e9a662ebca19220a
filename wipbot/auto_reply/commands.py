"""
Command detection and parsing for wip-bot.

A message is a command when it is:
- prefixed: "!spam 10"
- mention-addressed: "wip: spam 10" or "wip spam 10"
- sent in a direct chat (exactly two joined members): "spam 10"

Everything else is ordinary chatter and yields None.
"""

from dataclasses import dataclass, field
from enum import Enum


class CommandKind(str, Enum):
    """Every command the bot understands."""
    PING = "ping"
    WHOAMI = "whoami"
    SPAM = "spam"
    STICKERSPAM = "stickerspam"
    STICKER = "sticker"
    BROKEN_STICKER = "broken-sticker"
    IMAGE = "image"
    THREAD = "thread"
    REPLY = "reply"
    TYPING = "typing"
    BRIDGE_ID = "bridge-id"
    INVITE = "invite"
    HELP = "help"

    @classmethod
    def lookup(cls, name: str) -> "CommandKind | None":
        try:
            return cls(name)
        except ValueError:
            return None


class AddressMode(str, Enum):
    """How a command reached the bot."""
    PREFIX = "prefix"
    MENTION = "mention"
    DIRECT = "direct"


COMMAND_HELP: dict[CommandKind, str] = {
    CommandKind.PING: "ping - Check that the bot is alive",
    CommandKind.WHOAMI: "whoami - Show your trust level",
    CommandKind.SPAM: "spam [count [delay]] - Send a burst of text messages",
    CommandKind.STICKERSPAM: "stickerspam [count] - Send a burst of stickers",
    CommandKind.STICKER: "sticker [mxc-uri [caption]] - Send a single sticker",
    CommandKind.BROKEN_STICKER: "broken-sticker - Send a sticker without valid media",
    CommandKind.IMAGE: "image [count [width [height]]] - Send generated images",
    CommandKind.THREAD: "thread [count] - Reply in a thread, each message replying to the last",
    CommandKind.REPLY: "reply [count] - Build a reply chain",
    CommandKind.TYPING: "typing [seconds] - Show a typing notification",
    CommandKind.BRIDGE_ID: "bridge-id [id] - Mark this room as bridged",
    CommandKind.INVITE: "invite [title] - Post an invite link to this room",
    CommandKind.HELP: "help - Show this list",
}


@dataclass(frozen=True)
class IncomingCommand:
    """A parsed command."""
    name: str
    arguments: tuple[str, ...] = field(default_factory=tuple)
    addressed_by: AddressMode = AddressMode.PREFIX

    @property
    def kind(self) -> CommandKind | None:
        """Known command kind, or None for names the bot doesn't handle."""
        return CommandKind.lookup(self.name)

    def arg(self, index: int) -> str | None:
        """Get an argument by position, or None if absent."""
        if 0 <= index < len(self.arguments):
            return self.arguments[index]
        return None

    def args_from(self, index: int) -> str:
        """Join the arguments from a position on."""
        return " ".join(self.arguments[index:])


def parse_command(
    body: str,
    mention_aliases: list[str],
    is_direct: bool = False,
    prefix: str = "!",
) -> IncomingCommand | None:
    """
    Parse a message body into a command.

    Examples:
        "!spam 10 2" -> IncomingCommand(name="spam", arguments=("10", "2"))
        "wip: ping" -> IncomingCommand(name="ping", addressed_by=MENTION)
        "hello there" -> None (unless is_direct)

    Args:
        body: Plain-text message body.
        mention_aliases: Tokens that address the bot when they open a message.
        is_direct: Whether the room has exactly two joined members.
        prefix: Marker that turns a word into a command.

    Returns:
        Parsed IncomingCommand or None if the message is not addressed to the bot.
    """
    tokens = body.split()
    if not tokens:
        return None

    candidate = tokens[0].lower()
    rest = tokens[1:]

    aliases = {alias.lower() for alias in mention_aliases}
    is_mention = candidate in aliases
    if is_mention:
        candidate = rest[0].lower() if rest else ""
        rest = rest[1:]

    if prefix and candidate.startswith(prefix):
        name = candidate[len(prefix):]
        mode = AddressMode.PREFIX
    elif is_mention:
        name = candidate
        mode = AddressMode.MENTION
    elif is_direct:
        name = candidate
        mode = AddressMode.DIRECT
    else:
        return None

    if not name:
        return None

    return IncomingCommand(name=name, arguments=tuple(rest), addressed_by=mode)


def parse_count(token: str | None) -> int | None:
    """Parse a non-negative integer argument. Anything else counts as absent."""
    if token is None:
        return None
    try:
        value = int(token)
    except ValueError:
        return None
    return value if value >= 0 else None


def get_help(prefix: str = "!") -> str:
    """Help text listing every command."""
    lines = ["Available commands:"]
    for kind in CommandKind:
        lines.append(f"  {prefix}{COMMAND_HELP[kind]}")
    return "\n".join(lines)
