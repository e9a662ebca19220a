"""
Sender trust classification for wip-bot.

Every sender falls into one of three tiers, decided from static allow-lists:
- VIP: matches an entry of `users.vip`
- Trusted: matches an entry of `users.trusted` (VIP implies trusted)
- Anonymous: everyone else

An allow-list entry containing "@" is a full user id and must match exactly.
Any other entry is a server name and matches every user on that server.
"""

from enum import IntEnum

from wipbot.config.schema import Config


class TrustTier(IntEnum):
    """Permission tier of a sender. Ordered: ANONYMOUS < TRUSTED < VIP."""
    ANONYMOUS = 0
    TRUSTED = 1
    VIP = 2

    @property
    def is_trusted(self) -> bool:
        return self >= TrustTier.TRUSTED


def server_name(user_id: str) -> str:
    """Return the server part of a user id ("@alice:example.org" -> "example.org")."""
    _, sep, server = user_id.partition(":")
    return server if sep else ""


def is_user_matched(user_id: str, allowed: list[str]) -> bool:
    """Check a user id against allow-list entries."""
    server = server_name(user_id)
    for entry in allowed:
        if "@" in entry:
            if entry == user_id:
                return True
        elif entry == server:
            return True
    return False


def classify(user_id: str, vip: list[str], trusted: list[str]) -> TrustTier:
    """
    Classify a sender into a trust tier.

    Args:
        user_id: Matrix user id of the sender.
        vip: VIP allow-list entries.
        trusted: Trusted allow-list entries.

    Returns:
        The highest tier whose allow-list matches.
    """
    if is_user_matched(user_id, vip):
        return TrustTier.VIP
    if is_user_matched(user_id, trusted):
        return TrustTier.TRUSTED
    return TrustTier.ANONYMOUS


def classify_with_config(user_id: str, config: Config) -> TrustTier:
    """Classify against the allow-lists of a config snapshot."""
    return classify(user_id, config.users.vip, config.users.trusted)
