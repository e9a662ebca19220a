"""
Auto-join with exponential backoff.

Synapse can send invites before the invited user is able to join
(https://github.com/matrix-org/synapse/issues/4345), so a failed join is
retried: 2s, 4s, 8s, ... and given up once the next delay would exceed an hour.

    ATTEMPTING --join ok--> JOINED
    ATTEMPTING --join failed--> BACKOFF
    BACKOFF --slept, delay*2 <= max--> ATTEMPTING
    BACKOFF --slept, delay*2 > max--> ABANDONED
"""

import asyncio
from dataclasses import dataclass, replace
from enum import Enum

from loguru import logger

from wipbot.bus.events import RoomInvite
from wipbot.campaigns.bursts import Sleep
from wipbot.campaigns.supervisor import CampaignSupervisor
from wipbot.channels.base import BaseTransport, TransportError
from wipbot.config.schema import Config
from wipbot.security.trust import TrustTier, classify_with_config

INITIAL_DELAY_SECONDS = 2
MAX_DELAY_SECONDS = 3600


class JoinState(str, Enum):
    """States of a join attempt."""
    ATTEMPTING = "attempting"
    BACKOFF = "backoff"
    JOINED = "joined"
    ABANDONED = "abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (JoinState.JOINED, JoinState.ABANDONED)


class JoinOutcome(str, Enum):
    """Inputs to the state machine."""
    JOIN_OK = "join_ok"
    JOIN_FAILED = "join_failed"
    SLEPT = "slept"


@dataclass(frozen=True)
class JoinAttempt:
    """Progress of joining one room."""
    room_id: str
    inviter: str
    delay: int = INITIAL_DELAY_SECONDS
    attempts: int = 0
    state: JoinState = JoinState.ATTEMPTING


def advance(
    attempt: JoinAttempt,
    outcome: JoinOutcome,
    max_delay: int = MAX_DELAY_SECONDS,
) -> JoinAttempt:
    """
    Apply one outcome to a join attempt.

    Args:
        attempt: Current attempt.
        outcome: What just happened.
        max_delay: Give up once the backoff delay exceeds this.

    Returns:
        The next attempt. Terminal attempts are returned unchanged.

    Raises:
        ValueError: If the outcome doesn't fit the current state.
    """
    if attempt.state.is_terminal:
        return attempt

    if attempt.state == JoinState.ATTEMPTING:
        if outcome == JoinOutcome.JOIN_OK:
            return replace(attempt, attempts=attempt.attempts + 1, state=JoinState.JOINED)
        if outcome == JoinOutcome.JOIN_FAILED:
            return replace(attempt, attempts=attempt.attempts + 1, state=JoinState.BACKOFF)

    if attempt.state == JoinState.BACKOFF and outcome == JoinOutcome.SLEPT:
        delay = attempt.delay * 2
        state = JoinState.ABANDONED if delay > max_delay else JoinState.ATTEMPTING
        return replace(attempt, delay=delay, state=state)

    raise ValueError(f"Unexpected {outcome.value} while {attempt.state.value}")


class AutoJoiner:
    """Accepts invites from trusted users and retries failed joins."""

    def __init__(
        self,
        transport: BaseTransport,
        supervisor: CampaignSupervisor,
        config: Config,
        sleep: Sleep = asyncio.sleep,
        max_delay: int = MAX_DELAY_SECONDS,
    ):
        self.transport = transport
        self.supervisor = supervisor
        self.config = config
        self.sleep = sleep
        self.max_delay = max_delay

    def handle_invite(self, invite: RoomInvite, own_user_id: str) -> str | None:
        """
        React to an invite event without blocking.

        Returns:
            Campaign id of the join task, or None if the invite was ignored.
        """
        if invite.state_key != own_user_id:
            return None

        if classify_with_config(invite.sender, self.config) == TrustTier.ANONYMOUS:
            logger.info(f"Not auto-joining room {invite.room_id} by untrusted invitation from {invite.sender}")
            return None

        logger.info(f"Autojoining room {invite.room_id} by invitation from {invite.sender}")
        attempt = JoinAttempt(room_id=invite.room_id, inviter=invite.sender)
        return self.supervisor.spawn("join", self.run(attempt))

    async def run(self, attempt: JoinAttempt) -> JoinAttempt:
        """Drive an attempt to a terminal state."""
        while not attempt.state.is_terminal:
            if attempt.state == JoinState.ATTEMPTING:
                try:
                    await self.transport.join(attempt.room_id)
                except TransportError as e:
                    attempt = advance(attempt, JoinOutcome.JOIN_FAILED, self.max_delay)
                    logger.warning(f"Failed to join room {attempt.room_id} ({e}), retrying in {attempt.delay}s")
                else:
                    attempt = advance(attempt, JoinOutcome.JOIN_OK, self.max_delay)
            else:
                await self.sleep(attempt.delay)
                attempt = advance(attempt, JoinOutcome.SLEPT, self.max_delay)

        if attempt.state == JoinState.JOINED:
            logger.info(f"Successfully joined room {attempt.room_id}")
        else:
            logger.warning(f"Can't join room {attempt.room_id} after {attempt.attempts} attempts, giving up")
        return attempt
