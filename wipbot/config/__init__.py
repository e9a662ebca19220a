"""Configuration module for wip-bot."""

from wipbot.config.loader import load_config, get_config_path
from wipbot.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
