"""Event types passed from the Matrix channel to the bot core."""

from wipbot.bus.events import Membership, RoomInvite, RoomMessage, RoomSnapshot

__all__ = ["Membership", "RoomInvite", "RoomMessage", "RoomSnapshot"]
