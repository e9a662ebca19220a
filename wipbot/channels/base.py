"""
Outbound transport contract.

The bot core only talks to the homeserver through these calls. Every call
either succeeds or raises TransportError; callers decide whether a failure
aborts a campaign or is just logged.
"""

from abc import ABC, abstractmethod
from typing import Any


class TransportError(Exception):
    """A send, upload, state or join call failed."""

    def __init__(self, operation: str, room_id: str = "", detail: Any = None):
        self.operation = operation
        self.room_id = room_id
        self.detail = detail
        where = f" in {room_id}" if room_id else ""
        super().__init__(f"{operation} failed{where}: {detail}")


class ChannelStartError(Exception):
    """The channel could not establish its initial session."""


class BaseTransport(ABC):
    """Calls the bot core needs from the protocol client."""

    @abstractmethod
    async def send(self, room_id: str, content: dict[str, Any], event_type: str = "m.room.message") -> str:
        """Send a room event and return its event id."""

    @abstractmethod
    async def send_typing(self, room_id: str, active: bool, timeout_ms: int = 30000) -> None:
        """Start or stop the typing notification."""

    @abstractmethod
    async def set_room_state(
        self,
        room_id: str,
        event_type: str,
        state_key: str,
        content: dict[str, Any],
    ) -> None:
        """Put a state event."""

    @abstractmethod
    async def join(self, room_id: str) -> None:
        """Join a room."""

    @abstractmethod
    async def upload_media(self, data: bytes, mime_type: str, filename: str = "") -> str:
        """Upload media and return its content (mxc://) uri."""
