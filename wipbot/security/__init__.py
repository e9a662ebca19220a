"""
Security module for wip-bot.

The bot has no login or roles of its own; senders are ranked by static
allow-lists only.
"""

from wipbot.security.trust import (
    TrustTier,
    classify,
    classify_with_config,
    is_user_matched,
    server_name,
)

__all__ = [
    "TrustTier",
    "classify",
    "classify_with_config",
    "is_user_matched",
    "server_name",
]
