"""Event types for the bot core, decoupled from matrix-nio."""

import time
from dataclasses import dataclass
from enum import Enum


class Membership(str, Enum):
    """The bot's own membership in a room."""
    JOINED = "joined"
    INVITED = "invited"
    LEFT = "left"


@dataclass(frozen=True)
class RoomMessage:
    """A decoded room message event."""
    event_id: str
    sender: str
    body: str
    msgtype: str = "m.text"
    server_timestamp: int = 0  # Milliseconds since the epoch
    reply_to: str | None = None  # Event id this message replies to, if any

    @property
    def is_text(self) -> bool:
        return self.msgtype == "m.text"


@dataclass(frozen=True)
class RoomSnapshot:
    """What the router needs to know about the room a message arrived in."""
    room_id: str
    own_user_id: str
    membership: Membership = Membership.JOINED
    joined_count: int = 0
    is_public: bool = False
    display_name: str = ""

    @property
    def is_direct(self) -> bool:
        """Two joined members: the bot and one other user."""
        return self.joined_count == 2


@dataclass(frozen=True)
class RoomInvite:
    """An invite membership event."""
    room_id: str
    sender: str
    state_key: str  # The invited user


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)
