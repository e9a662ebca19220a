"""Protocol channels for wip-bot."""

from wipbot.channels.base import BaseTransport, ChannelStartError, TransportError

__all__ = ["BaseTransport", "ChannelStartError", "TransportError"]
