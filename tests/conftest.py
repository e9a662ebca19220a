"""
Pytest configuration and shared fixtures for wip-bot tests.
"""

import asyncio
import pytest
import sys
from pathlib import Path

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from wipbot.bus.events import RoomSnapshot
from wipbot.campaigns.supervisor import CampaignSupervisor
from wipbot.channels.base import BaseTransport, TransportError
from wipbot.config.schema import BotConfig, Config, UsersConfig

BOT_ID = "@wip:bot.example"
ROOM_ID = "!room:example.org"
LAUNCHED_TS = 1_700_000_000_000


class FakeTransport(BaseTransport):
    """Records every outbound call. Can be told to fail sends or joins."""

    def __init__(self, fail_sends_after: int | None = None, join_failures: int = 0):
        self.fail_sends_after = fail_sends_after
        self.join_failures = join_failures
        self.sent: list[tuple[str, str, dict]] = []
        self.typing: list[tuple[str, bool]] = []
        self.state: list[tuple[str, str, str, dict]] = []
        self.joins: list[str] = []
        self.uploads: list[tuple[bytes, str, str]] = []

    async def send(self, room_id, content, event_type="m.room.message"):
        if self.fail_sends_after is not None and len(self.sent) >= self.fail_sends_after:
            raise TransportError("send", room_id, "M_LIMIT_EXCEEDED")
        self.sent.append((room_id, event_type, content))
        return f"$event{len(self.sent)}"

    async def send_typing(self, room_id, active, timeout_ms=30000):
        self.typing.append((room_id, active))

    async def set_room_state(self, room_id, event_type, state_key, content):
        self.state.append((room_id, event_type, state_key, content))

    async def join(self, room_id):
        self.joins.append(room_id)
        if len(self.joins) <= self.join_failures:
            raise TransportError("join", room_id, "M_FORBIDDEN")

    async def upload_media(self, data, mime_type, filename=""):
        self.uploads.append((data, mime_type, filename))
        return f"mxc://test.example/{len(self.uploads)}"

    @property
    def bodies(self) -> list[str]:
        return [content.get("body") for _, _, content in self.sent]

    @property
    def event_types(self) -> list[str]:
        return [event_type for _, event_type, _ in self.sent]


class SleepRecorder:
    """Stand-in for asyncio.sleep that returns immediately and remembers delays."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await asyncio.sleep(0)


class GateSleep(SleepRecorder):
    """Sleep that blocks until the gate is opened."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        await self.gate.wait()


@pytest.fixture
def transport():
    """A transport that records calls and never fails."""
    return FakeTransport()


@pytest.fixture
def sleep():
    """An instant sleep recorder."""
    return SleepRecorder()


@pytest.fixture
def supervisor():
    return CampaignSupervisor()


@pytest.fixture
def config():
    """Config with one VIP, one trusted server and a mention name."""
    return Config(
        bot=BotConfig(plaintext_ping="wip"),
        users=UsersConfig(
            vip=["@vip:example.org"],
            trusted=["trusted.org"],
        ),
    )


@pytest.fixture
def room():
    """A private group room the bot has joined."""
    return RoomSnapshot(room_id=ROOM_ID, own_user_id=BOT_ID, joined_count=5, display_name="Test room")


@pytest.fixture
def config_dir(tmp_path):
    """Create a temporary config directory."""
    config = tmp_path / "config"
    config.mkdir()
    return config
