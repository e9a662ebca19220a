"""Static content used by bursts. Tables are indexed cyclically and never empty."""

from typing import Sequence, TypeVar

T = TypeVar("T")

CANNED_SPAM = "Here be spam"

SPAM_MESSAGES: tuple[str, ...] = (
    "Spam",
    "More spam",
    "Even more spam",
    "Spam, spam, spam",
    "Lovely spam! Wonderful spam!",
    "Spam with eggs and bacon",
    "Spam, spam, spam, eggs and spam",
    "This message intentionally left blank... almost",
    "Did you scroll down yet?",
    "Unread counter goes brrr",
    "Notifications, notifications everywhere",
    "Still spamming",
    "Are we there yet?",
    "Lorem ipsum dolor sit amet",
    "The quick brown fox jumps over the lazy dog",
    "Last one. Maybe.",
)

# Captions rendered onto generated sticker images
STICKER_CAPTIONS: tuple[str, ...] = (
    "WIP",
    "Hi!",
    "Spam?",
    "OK",
    "No",
    "Why",
    "LOL",
    "Bye",
)

# Background/foreground colour pairs for generated media
COLOR_PAIRS: tuple[tuple[str, str], ...] = (
    ("#8b0000", "#ffffff"),
    ("#006400", "#ffffff"),
    ("#00008b", "#ffffff"),
    ("#ffd700", "#000000"),
    ("#ff69b4", "#000000"),
    ("#2f4f4f", "#ffffff"),
)


def pick(table: Sequence[T], index: int) -> T:
    """Select the entry for a burst index, wrapping around the table."""
    return table[index % len(table)]


def format_item(body: str, index: int, numbered: bool) -> str:
    """Prefix the 1-based index when the sender asked for an explicit count."""
    return f"{index + 1}: {body}" if numbered else body
