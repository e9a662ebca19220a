"""
Event routing for wip-bot.

Decides which room messages are commands and dispatches them.
"""

from wipbot.routing.router import EventRouter, RouteOutcome

__all__ = ["EventRouter", "RouteOutcome"]
