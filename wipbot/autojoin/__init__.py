"""Auto-join handling for room invites."""

from wipbot.autojoin.retry import (
    AutoJoiner,
    JoinAttempt,
    JoinOutcome,
    JoinState,
    advance,
)

__all__ = ["AutoJoiner", "JoinAttempt", "JoinOutcome", "JoinState", "advance"]
