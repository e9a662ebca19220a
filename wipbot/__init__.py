"""
wip-bot - a Matrix bot for stress-testing clients and homeservers.
"""

__version__ = "0.1.0"
__logo__ = "🚧"
