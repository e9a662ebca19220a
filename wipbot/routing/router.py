"""
Event router for wip-bot.

Filters incoming room messages, parses commands and dispatches them:
- single-shot commands are answered inline
- bursts go through the campaign scheduler and run detached

`route` never waits for a campaign to finish.
"""

import asyncio
import html
from enum import Enum
from typing import Awaitable, Callable

from loguru import logger

from wipbot.auto_reply.commands import CommandKind, IncomingCommand, get_help, parse_command, parse_count
from wipbot.auto_reply.content import COLOR_PAIRS, SPAM_MESSAGES, STICKER_CAPTIONS
from wipbot.bus.events import Membership, RoomMessage, RoomSnapshot, now_ms
from wipbot.campaigns.bursts import (
    Sleep,
    image_burst,
    reply_chain,
    send_sticker,
    sticker_burst,
    sticker_content,
    text_burst,
    text_content,
    typing_burst,
)
from wipbot.campaigns.policy import CampaignSpec, CommandFamily, resolve_campaign
from wipbot.campaigns.scheduler import CampaignScheduler
from wipbot.campaigns.supervisor import CampaignSupervisor
from wipbot.channels.base import BaseTransport, TransportError
from wipbot.config.schema import Config
from wipbot.security.trust import TrustTier, classify_with_config

# Messages sent this long before launch still count as live
HISTORY_GRACE_MS = 10_000

DEFAULT_TYPING_SECONDS = 5
DEFAULT_BRIDGE_ID = "wip"
BROKEN_STICKER_URL = "mxc://wip.invalid/this-media-does-not-exist"
BRIDGE_EVENT_TYPE = "m.bridge"

WHOAMI_REPLIES = {
    TrustTier.VIP: "You are VIP",
    TrustTier.TRUSTED: "You look trustworthy",
    TrustTier.ANONYMOUS: "You are nobody",
}


class RouteOutcome(str, Enum):
    """What the router did with an event."""
    NOT_JOINED = "not_joined"
    OWN_MESSAGE = "own_message"
    NOT_TEXT = "not_text"
    HISTORY = "history"
    NOT_A_COMMAND = "not_a_command"
    UNKNOWN_COMMAND = "unknown_command"
    DISPATCHED = "dispatched"


CommandHandler = Callable[[IncomingCommand, RoomMessage, RoomSnapshot, TrustTier], Awaitable[None]]


class EventRouter:
    """
    Routes room messages to command handlers.

    Flow:
    1. Drop events from rooms we haven't joined, our own events and non-text
    2. Drop events older than launch time minus a grace window
    3. Parse the body; non-commands are ignored
    4. Classify the sender and run the handler for the command kind
    """

    def __init__(
        self,
        transport: BaseTransport,
        config: Config,
        supervisor: CampaignSupervisor | None = None,
        sleep: Sleep = asyncio.sleep,
        launched_ts: int | None = None,
    ):
        self.transport = transport
        self.config = config
        self.supervisor = supervisor or CampaignSupervisor()
        self.sleep = sleep
        self.launched_ts = launched_ts if launched_ts is not None else now_ms()
        self.scheduler = CampaignScheduler(transport, self.supervisor, config.limits, sleep)

        self._handlers: dict[CommandKind, CommandHandler] = {
            CommandKind.PING: self._handle_ping,
            CommandKind.WHOAMI: self._handle_whoami,
            CommandKind.SPAM: self._handle_spam,
            CommandKind.STICKERSPAM: self._handle_stickerspam,
            CommandKind.STICKER: self._handle_sticker,
            CommandKind.BROKEN_STICKER: self._handle_broken_sticker,
            CommandKind.IMAGE: self._handle_image,
            CommandKind.THREAD: self._handle_thread,
            CommandKind.REPLY: self._handle_reply,
            CommandKind.TYPING: self._handle_typing,
            CommandKind.BRIDGE_ID: self._handle_bridge_id,
            CommandKind.INVITE: self._handle_invite,
            CommandKind.HELP: self._handle_help,
        }
        missing = set(CommandKind) - set(self._handlers)
        if missing:
            raise RuntimeError(f"No handler for commands: {sorted(k.value for k in missing)}")

    async def route(
        self,
        message: RoomMessage,
        room: RoomSnapshot,
        launched_ts: int | None = None,
    ) -> RouteOutcome:
        """
        Handle one room message.

        Args:
            message: The decoded event.
            room: State of the room it arrived in.
            launched_ts: Override for the process launch time (ms).

        Returns:
            What happened to the event.
        """
        if room.membership != Membership.JOINED:
            return RouteOutcome.NOT_JOINED
        if message.sender == room.own_user_id:
            return RouteOutcome.OWN_MESSAGE
        if not message.is_text:
            return RouteOutcome.NOT_TEXT

        launched = self.launched_ts if launched_ts is None else launched_ts
        if message.server_timestamp < launched - HISTORY_GRACE_MS:
            logger.info(f"Ignore message in the past: {message.event_id} in {room.room_id}")
            return RouteOutcome.HISTORY

        logger.trace(f"Message received by {message.sender} in {room.room_id}: {message.body}")

        command = parse_command(
            message.body,
            self.config.bot.mention_aliases,
            is_direct=room.is_direct,
            prefix=self.config.bot.command_prefix,
        )
        if command is None:
            return RouteOutcome.NOT_A_COMMAND

        kind = command.kind
        if kind is None:
            logger.info(f"Ignore unknown command \"{command.name}\" by {message.sender} in {room.room_id}")
            return RouteOutcome.UNKNOWN_COMMAND

        tier = classify_with_config(message.sender, self.config)
        logger.info(f"Got {kind.value} in {room.room_id} from {message.sender} ({tier.name.lower()})")
        await self._handlers[kind](command, message, room, tier)
        return RouteOutcome.DISPATCHED

    async def _reply(self, room_id: str, body: str, notice: bool = False) -> None:
        """Send a single message, logging failures."""
        try:
            await self.transport.send(room_id, text_content(body, notice=notice))
        except TransportError as e:
            logger.warning(f"Failed to reply in {room_id}: {e}")

    def _resolve(
        self,
        family: CommandFamily,
        tier: TrustTier,
        room: RoomSnapshot,
        table_length: int,
        count_token: str | None,
        delay_token: str | None = None,
    ) -> CampaignSpec:
        spec = resolve_campaign(
            family,
            tier,
            room.is_public,
            self.config.limits,
            table_length,
            count_token=count_token,
            delay_token=delay_token,
        )
        logger.debug(f"Resolved {family.value} campaign in {room.room_id}: {spec}")
        return spec

    # -------------------------------------------------------------------------
    # Single-shot commands
    # -------------------------------------------------------------------------

    async def _handle_ping(self, cmd, message, room, tier) -> None:
        await self._reply(room.room_id, "I'm here")

    async def _handle_whoami(self, cmd, message, room, tier) -> None:
        await self._reply(room.room_id, WHOAMI_REPLIES[tier])

    async def _handle_help(self, cmd, message, room, tier) -> None:
        await self._reply(room.room_id, get_help(self.config.bot.command_prefix), notice=True)

    async def _handle_sticker(self, cmd, message, room, tier) -> None:
        ref = cmd.arg(0)
        if ref and ref.startswith("mxc://"):
            caption = cmd.args_from(1) or "Sticker"
            try:
                await self.transport.send(room.room_id, sticker_content(caption, ref, {}), "m.sticker")
            except TransportError as e:
                logger.warning(f"Failed to send sticker {ref} in {room.room_id}: {e}")
            return

        caption = cmd.args_from(0) or STICKER_CAPTIONS[0]
        self.supervisor.spawn("sticker", self._send_rendered_sticker(room.room_id, caption))

    async def _send_rendered_sticker(self, room_id: str, caption: str) -> None:
        try:
            await send_sticker(self.transport, room_id, caption)
        except TransportError as e:
            logger.warning(f"Failed to send sticker in {room_id}: {e}")

    async def _handle_broken_sticker(self, cmd, message, room, tier) -> None:
        content = sticker_content(
            "Broken sticker",
            BROKEN_STICKER_URL,
            {"mimetype": "image/png", "w": 256, "h": 256},
        )
        try:
            await self.transport.send(room.room_id, content, "m.sticker")
        except TransportError as e:
            logger.warning(f"Failed to send broken sticker in {room.room_id}: {e}")

    async def _handle_bridge_id(self, cmd, message, room, tier) -> None:
        if not tier.is_trusted:
            logger.info(f"Not setting bridge state in {room.room_id} for untrusted {message.sender}")
            return

        bridge_id = cmd.arg(0) or DEFAULT_BRIDGE_ID
        content = {
            "bridgebot": room.own_user_id,
            "creator": message.sender,
            "protocol": {"id": bridge_id, "displayname": bridge_id},
        }
        try:
            await self.transport.set_room_state(room.room_id, BRIDGE_EVENT_TYPE, bridge_id, content)
        except TransportError as e:
            logger.warning(f"Failed to set bridge state in {room.room_id}: {e}")
            await self._reply(room.room_id, "Failed to set bridge state", notice=True)
            return
        await self._reply(room.room_id, f"Bridge protocol set to \"{bridge_id}\"", notice=True)

    async def _handle_invite(self, cmd, message, room, tier) -> None:
        title = cmd.args_from(0) or room.display_name or room.room_id
        link = f"https://matrix.to/#/{room.room_id}"
        content = {
            "msgtype": "m.text",
            "body": f"{title}: {link}",
            "format": "org.matrix.custom.html",
            "formatted_body": f"<a href=\"{html.escape(link)}\">{html.escape(title)}</a>",
        }
        try:
            await self.transport.send(room.room_id, content)
        except TransportError as e:
            logger.warning(f"Failed to send invite link in {room.room_id}: {e}")

    async def _handle_typing(self, cmd, message, room, tier) -> None:
        requested = parse_count(cmd.arg(0))
        seconds = min(requested or DEFAULT_TYPING_SECONDS, self.config.limits.max_typing_seconds)
        self.supervisor.spawn("typing", typing_burst(self.transport, room.room_id, seconds, self.sleep))

    # -------------------------------------------------------------------------
    # Bursts
    # -------------------------------------------------------------------------

    async def _handle_spam(self, cmd, message, room, tier) -> None:
        spec = self._resolve(CommandFamily.TEXT, tier, room, len(SPAM_MESSAGES), cmd.arg(0), cmd.arg(1))
        await self.scheduler.launch(
            room.room_id, spec, "spam", "messages",
            lambda: text_burst(self.transport, room.room_id, spec, self.sleep),
        )

    async def _handle_stickerspam(self, cmd, message, room, tier) -> None:
        spec = self._resolve(CommandFamily.STICKER, tier, room, len(STICKER_CAPTIONS), cmd.arg(0))
        await self.scheduler.launch(
            room.room_id, spec, "stickerspam", "stickers",
            lambda: sticker_burst(self.transport, room.room_id, spec, self.sleep),
        )

    async def _handle_image(self, cmd, message, room, tier) -> None:
        spec = self._resolve(CommandFamily.IMAGE, tier, room, len(COLOR_PAIRS), cmd.arg(0))
        width = self._image_size(cmd.arg(1))
        height = self._image_size(cmd.arg(2), default=width)
        await self.scheduler.launch(
            room.room_id, spec, "image", "images",
            lambda: image_burst(self.transport, room.room_id, spec, width, height, self.sleep),
        )

    def _image_size(self, token: str | None, default: int | None = None) -> int:
        limits = self.config.limits
        value = parse_count(token)
        if not value:
            return default or limits.default_image_size
        return min(value, limits.max_image_size)

    async def _handle_thread(self, cmd, message, room, tier) -> None:
        spec = self._resolve(CommandFamily.TEXT, tier, room, len(SPAM_MESSAGES), cmd.arg(0))
        await self.scheduler.launch(
            room.room_id, spec, "thread", "thread messages",
            lambda: reply_chain(
                self.transport, room.room_id, spec,
                first_target=message.event_id,
                thread_root=message.event_id,
                sleep=self.sleep,
            ),
        )

    async def _handle_reply(self, cmd, message, room, tier) -> None:
        spec = self._resolve(CommandFamily.TEXT, tier, room, len(SPAM_MESSAGES), cmd.arg(0))
        await self.scheduler.launch(
            room.room_id, spec, "reply", "replies",
            lambda: reply_chain(
                self.transport, room.room_id, spec,
                first_target=message.event_id,
                sleep=self.sleep,
            ),
        )
