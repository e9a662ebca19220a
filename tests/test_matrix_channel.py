"""
Tests for the matrix-nio adapter.

The nio client is replaced by an AsyncMock; only the conversion helpers and
the response-to-TransportError mapping are exercised here.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from nio import JoinError, JoinResponse, RoomSendError, RoomSendResponse, UploadResponse

from conftest import BOT_ID, ROOM_ID
from wipbot.bus.events import Membership
from wipbot.channels.base import TransportError
from wipbot.channels.matrix import MatrixChannel, MatrixSession, to_room_message, to_room_snapshot
from wipbot.config.schema import Config


def nio_event(body="!ping", content=None):
    content = content or {"msgtype": "m.text", "body": body}
    return SimpleNamespace(
        event_id="$abc",
        sender="@alice:example.org",
        body=body,
        server_timestamp=1234,
        source={"content": content},
    )


def nio_room(join_rule="invite", joined_count=3):
    return SimpleNamespace(
        room_id=ROOM_ID,
        own_user_id=BOT_ID,
        joined_count=joined_count,
        join_rule=join_rule,
        display_name="Test room",
    )


class TestConversion:
    """nio objects to core events."""

    def test_to_room_message(self):
        message = to_room_message(nio_event())

        assert message.event_id == "$abc"
        assert message.body == "!ping"
        assert message.is_text
        assert message.server_timestamp == 1234
        assert message.reply_to is None

    def test_reply_relation(self):
        content = {
            "msgtype": "m.text",
            "body": "hi",
            "m.relates_to": {"m.in_reply_to": {"event_id": "$parent"}},
        }

        assert to_room_message(nio_event("hi", content)).reply_to == "$parent"

    def test_notice_is_not_text(self):
        content = {"msgtype": "m.notice", "body": "beep"}

        assert not to_room_message(nio_event("beep", content)).is_text

    def test_to_room_snapshot(self):
        snapshot = to_room_snapshot(nio_room(), joined=True)

        assert snapshot.membership == Membership.JOINED
        assert not snapshot.is_public
        assert not snapshot.is_direct

    def test_public_direct_and_left(self):
        snapshot = to_room_snapshot(nio_room(join_rule="public", joined_count=2), joined=False)

        assert snapshot.is_public
        assert snapshot.is_direct
        assert snapshot.membership == Membership.LEFT


class TestSession:
    """Stored login state."""

    def test_missing_file(self, tmp_path):
        assert MatrixSession(tmp_path / "session.json").load() is None

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "session.json"
        path.write_text("{not json")

        assert MatrixSession(path).load() is None

    def test_save_and_load(self, tmp_path):
        session = MatrixSession(tmp_path / "nested" / "session.json")
        session.save(SimpleNamespace(user_id=BOT_ID, device_id="DEVICE", access_token="token"))

        assert session.load() == {"user_id": BOT_ID, "device_id": "DEVICE", "access_token": "token"}


class TestTransport:
    """Mapping nio responses onto the transport contract."""

    @pytest.fixture
    def channel(self):
        channel = MatrixChannel(Config())
        channel._client = AsyncMock()
        return channel

    def test_client_requires_start(self):
        with pytest.raises(RuntimeError):
            MatrixChannel(Config()).client

    @pytest.mark.asyncio
    async def test_send_returns_event_id(self, channel):
        channel._client.room_send.return_value = RoomSendResponse("$sent", ROOM_ID)

        assert await channel.send(ROOM_ID, {"msgtype": "m.text", "body": "hi"}) == "$sent"
        kwargs = channel._client.room_send.call_args.kwargs
        assert kwargs["message_type"] == "m.room.message"

    @pytest.mark.asyncio
    async def test_send_error(self, channel):
        channel._client.room_send.return_value = RoomSendError("M_FORBIDDEN")

        with pytest.raises(TransportError) as exc:
            await channel.send(ROOM_ID, {"msgtype": "m.text", "body": "hi"})

        assert exc.value.operation == "send"
        assert exc.value.room_id == ROOM_ID

    @pytest.mark.asyncio
    async def test_join(self, channel):
        channel._client.join.return_value = JoinResponse(ROOM_ID)
        await channel.join(ROOM_ID)

        channel._client.join.return_value = JoinError("M_FORBIDDEN")
        with pytest.raises(TransportError):
            await channel.join(ROOM_ID)

    @pytest.mark.asyncio
    async def test_upload_prefers_media_client(self, channel):
        media = AsyncMock()
        media.upload.return_value = (UploadResponse("mxc://media.example/1"), None)
        channel._media_client = media

        assert await channel.upload_media(b"png", "image/png", "a.png") == "mxc://media.example/1"
        channel._client.upload.assert_not_called()

    @pytest.mark.asyncio
    async def test_typing_error(self, channel):
        channel._client.room_typing.return_value = object()

        with pytest.raises(TransportError):
            await channel.send_typing(ROOM_ID, True)
