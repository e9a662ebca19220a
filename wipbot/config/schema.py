"""Configuration schema using Pydantic."""

from pathlib import Path
from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FrozenModel(BaseModel):
    """Base for config sections; snapshots are shared read-only between tasks."""
    model_config = ConfigDict(frozen=True)


class LoginConfig(FrozenModel):
    """Matrix account used by the bot."""
    homeserver_url: str = ""  # e.g. https://matrix.example.org
    username: str = ""  # Full mxid (@bot:example.org) or localpart
    password: str = ""
    device_name: str = "wip-bot"
    recovery_key: str = ""  # Accepted for compatibility, key recovery is not handled here


class MediaLoginConfig(FrozenModel):
    """Optional second account used only for media uploads."""
    homeserver_url: str = ""
    username: str = ""
    password: str = ""
    device_name: str = ""  # Empty means reuse login.device_name

    @property
    def enabled(self) -> bool:
        return bool(self.homeserver_url)


class BotConfig(FrozenModel):
    """How the bot presents itself and how it can be addressed."""
    plaintext_ping: str = ""  # Plain-text name that addresses the bot ("wip", "wip:")
    display_name: str = "WIP-Bot"
    command_prefix: str = "!"

    @property
    def mention_aliases(self) -> list[str]:
        """Tokens that address the bot when they open a message."""
        if not self.plaintext_ping:
            return []
        return [self.plaintext_ping, f"{self.plaintext_ping}:"]


class UsersConfig(FrozenModel):
    """Static allow-lists: full mxids or bare server names."""
    vip: list[str] = Field(default_factory=list)
    trusted: list[str] = Field(default_factory=list)


class TierLimits(FrozenModel):
    """Maximum burst length per command family."""
    text: int = 100
    sticker: int = 20
    image: int = 10


class LimitsConfig(FrozenModel):
    """Rate limits applied before a campaign is launched."""
    vip: TierLimits = Field(default_factory=lambda: TierLimits(text=500, sticker=100, image=50))
    trusted: TierLimits = Field(default_factory=TierLimits)
    max_delay_seconds: int = 20  # Upper bound for the whole delayed burst
    max_typing_seconds: int = 60
    max_image_size: int = 2048  # Pixels, applied to width and height
    default_image_size: int = 512


class Config(BaseSettings):
    """Root configuration for wip-bot."""
    model_config = SettingsConfigDict(
        env_prefix="WIPBOT_",
        env_nested_delimiter="__",
        frozen=True,
    )

    login: LoginConfig = Field(default_factory=LoginConfig)
    media_login: MediaLoginConfig = Field(default_factory=MediaLoginConfig)
    data_path: str = "~/.wipbot"
    bot: BotConfig = Field(default_factory=BotConfig)
    users: UsersConfig = Field(default_factory=UsersConfig)
    limits: LimitsConfig = Field(default_factory=LimitsConfig)

    @property
    def data_dir(self) -> Path:
        """Get expanded data directory path."""
        return Path(self.data_path).expanduser()

    @property
    def bot_server(self) -> str:
        """Server name taken from the configured username, if it is a full mxid."""
        _, sep, server = self.login.username.partition(":")
        return server if sep else ""
