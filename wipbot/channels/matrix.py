"""
Matrix channel integration for wip-bot.

Uses matrix-nio with support for:
- Password login with session persistence (access token reuse)
- An optional second account for media uploads
- Skipping history: the first sync runs before message callbacks exist
"""

import asyncio
import io
import json
from pathlib import Path
from typing import Any

from loguru import logger
from nio import (
    AsyncClient,
    AsyncClientConfig,
    InviteMemberEvent,
    JoinResponse,
    LoginResponse,
    MatrixRoom,
    RoomMessageText,
    RoomPutStateResponse,
    RoomSendResponse,
    RoomTypingResponse,
    SyncError,
    UploadResponse,
)

from wipbot.autojoin.retry import AutoJoiner
from wipbot.bus.events import Membership, RoomInvite, RoomMessage, RoomSnapshot, now_ms
from wipbot.campaigns.supervisor import CampaignSupervisor
from wipbot.channels.base import BaseTransport, ChannelStartError, TransportError
from wipbot.config.schema import Config
from wipbot.routing.router import EventRouter

SYNC_TIMEOUT_MS = 30000
SYNC_RETRY_SECONDS = 5


def to_room_message(event: RoomMessageText) -> RoomMessage:
    """Convert a nio text event into the core event type."""
    relates_to = event.source.get("content", {}).get("m.relates_to") or {}
    reply_to = (relates_to.get("m.in_reply_to") or {}).get("event_id")
    return RoomMessage(
        event_id=event.event_id,
        sender=event.sender,
        body=event.body,
        msgtype=event.source.get("content", {}).get("msgtype", "m.text"),
        server_timestamp=event.server_timestamp,
        reply_to=reply_to,
    )


def to_room_snapshot(room: MatrixRoom, joined: bool) -> RoomSnapshot:
    """Capture the parts of a nio room the router needs."""
    return RoomSnapshot(
        room_id=room.room_id,
        own_user_id=room.own_user_id,
        membership=Membership.JOINED if joined else Membership.LEFT,
        joined_count=room.joined_count,
        is_public=room.join_rule == "public",
        display_name=room.display_name,
    )


class MatrixSession:
    """Login state persisted between runs so the device id stays stable."""

    def __init__(self, path: Path):
        self.path = path

    def load(self) -> dict[str, str] | None:
        if not self.path.exists():
            return None
        try:
            return json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return None

    def save(self, response: LoginResponse) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps({
            "user_id": response.user_id,
            "device_id": response.device_id,
            "access_token": response.access_token,
        }))


async def get_logged_in_client(
    log_tag: str,
    homeserver: str,
    username: str,
    password: str,
    device_name: str,
    store_path: Path,
    session: MatrixSession,
) -> AsyncClient:
    """
    Create a client and log it in, reusing a stored session when present.

    Raises:
        ChannelStartError: If no session exists and password login fails.
    """
    store_path.mkdir(parents=True, exist_ok=True)
    client = AsyncClient(
        homeserver,
        username,
        store_path=str(store_path),
        config=AsyncClientConfig(store_sync_tokens=True, encryption_enabled=False),
    )

    stored = session.load()
    if stored:
        logger.info(f"Restoring old {log_tag} login...")
        client.restore_login(stored["user_id"], stored["device_id"], stored["access_token"])
        return client

    logger.info(f"Doing a fresh {log_tag} login to {homeserver} as {username}...")
    response = await client.login(password, device_name=device_name)
    if not isinstance(response, LoginResponse):
        await client.close()
        raise ChannelStartError(f"Matrix {log_tag} login failed: {response}")

    logger.info(f"Logged in {log_tag} as {response.user_id} ({response.device_id})")
    session.save(response)
    return client


class MatrixChannel(BaseTransport):
    """
    Matrix channel and transport.

    Configuration (via Config):
    - login: homeserver_url, username, password, device_name
    - media_login: optional account for uploads
    - data_path: where sessions and nio stores live
    """

    name = "matrix"

    def __init__(self, config: Config, supervisor: CampaignSupervisor | None = None):
        self.config = config
        self.supervisor = supervisor or CampaignSupervisor()

        self._client: AsyncClient | None = None
        self._media_client: AsyncClient | None = None
        self._router: EventRouter | None = None
        self._autojoiner: AutoJoiner | None = None
        self._running = False

    @property
    def client(self) -> AsyncClient:
        if self._client is None:
            raise RuntimeError("Matrix channel not started")
        return self._client

    @property
    def is_running(self) -> bool:
        """Check if the channel is running."""
        return self._running

    async def _login(self) -> None:
        login = self.config.login
        data_dir = self.config.data_dir

        if not login.homeserver_url or not login.username:
            raise ChannelStartError("login.homeserver_url and login.username are required")

        self._client = await get_logged_in_client(
            "bot",
            login.homeserver_url,
            login.username,
            login.password,
            login.device_name,
            data_dir / "db",
            MatrixSession(data_dir / "session.json"),
        )

        media = self.config.media_login
        if media.enabled:
            logger.debug(f"Found media client config for {media.homeserver_url}")
            self._media_client = await get_logged_in_client(
                "media",
                media.homeserver_url,
                media.username,
                media.password,
                media.device_name or login.device_name,
                data_dir / "media_db",
                MatrixSession(data_dir / "media_session.json"),
            )

    def _setup_invite_callback(self) -> None:
        async def invite_callback(room: MatrixRoom, event: InviteMemberEvent):
            """Handle room invites."""
            if event.membership != "invite":
                return
            invite = RoomInvite(room_id=room.room_id, sender=event.sender, state_key=event.state_key)
            self._autojoiner.handle_invite(invite, self.client.user_id)

        self.client.add_event_callback(invite_callback, InviteMemberEvent)

    def _setup_message_callback(self) -> None:
        async def message_callback(room: MatrixRoom, event: RoomMessageText):
            """Handle incoming text messages."""
            joined = room.room_id in self.client.rooms
            await self._router.route(to_room_message(event), to_room_snapshot(room, joined))

        self.client.add_event_callback(message_callback, RoomMessageText)

    async def start(self) -> None:
        """
        Log in and run the sync loop until stopped.

        Raises:
            ChannelStartError: If the initial session cannot be established.
        """
        await self._login()
        logger.info(f"Starting Matrix channel for {self.client.user_id}")

        self._router = EventRouter(self, self.config, self.supervisor, launched_ts=now_ms())
        self._autojoiner = AutoJoiner(self, self.supervisor, self.config)

        # Invites may also come from state handled during the first sync
        self._setup_invite_callback()

        # Sync once without the message handler so old messages are not replayed
        logger.info("Starting initial sync...")
        response = await self.client.sync(timeout=SYNC_TIMEOUT_MS, full_state=True)
        if isinstance(response, SyncError):
            raise ChannelStartError(f"Initial sync failed: {response.message}")
        logger.info(f"Initial sync finished with token {response.next_batch}, start listening for events")

        self._setup_message_callback()
        self._running = True
        await self._sync_loop()

    async def _sync_loop(self) -> None:
        """Main sync loop for receiving events."""
        while self._running:
            try:
                response = await self.client.sync(timeout=SYNC_TIMEOUT_MS)
                if isinstance(response, SyncError):
                    logger.error(f"Matrix sync error: {response.message}")
                    await asyncio.sleep(SYNC_RETRY_SECONDS)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if self._running:
                    logger.error(f"Matrix sync exception: {e}")
                    await asyncio.sleep(SYNC_RETRY_SECONDS)

    async def stop(self) -> None:
        """Stop the Matrix channel."""
        logger.info("Stopping Matrix channel")
        self._running = False
        await self.supervisor.shutdown()

        for client in (self._client, self._media_client):
            if client:
                await client.close()
        self._client = None
        self._media_client = None

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    async def send(self, room_id: str, content: dict[str, Any], event_type: str = "m.room.message") -> str:
        response = await self.client.room_send(
            room_id=room_id,
            message_type=event_type,
            content=content,
            ignore_unverified_devices=True,
        )
        if not isinstance(response, RoomSendResponse):
            raise TransportError("send", room_id, response)
        return response.event_id

    async def send_typing(self, room_id: str, active: bool, timeout_ms: int = 30000) -> None:
        response = await self.client.room_typing(room_id, typing_state=active, timeout=timeout_ms)
        if not isinstance(response, RoomTypingResponse):
            raise TransportError("typing", room_id, response)

    async def set_room_state(
        self,
        room_id: str,
        event_type: str,
        state_key: str,
        content: dict[str, Any],
    ) -> None:
        response = await self.client.room_put_state(room_id, event_type, content, state_key=state_key)
        if not isinstance(response, RoomPutStateResponse):
            raise TransportError("state", room_id, response)

    async def join(self, room_id: str) -> None:
        response = await self.client.join(room_id)
        if not isinstance(response, JoinResponse):
            raise TransportError("join", room_id, response)

    async def upload_media(self, data: bytes, mime_type: str, filename: str = "") -> str:
        client = self._media_client or self.client
        response, _ = await client.upload(
            io.BytesIO(data),
            content_type=mime_type,
            filename=filename or None,
            filesize=len(data),
        )
        if not isinstance(response, UploadResponse):
            raise TransportError("upload", detail=response)
        return response.content_uri
