"""CLI module for wip-bot."""
