"""
Campaign scheduler.

Takes a resolved CampaignSpec, sends the limit notice if needed, and hands
the burst to the supervisor. `launch` returns as soon as the task exists.
"""

import asyncio
from typing import Any, Callable, Coroutine

from loguru import logger

from wipbot.auto_reply.content import CANNED_SPAM, STICKER_CAPTIONS
from wipbot.campaigns.bursts import Sleep, image_burst, send_sticker, text_content
from wipbot.campaigns.policy import CampaignMode, CampaignSpec, CommandFamily, limit_notice
from wipbot.campaigns.supervisor import CampaignSupervisor
from wipbot.channels.base import BaseTransport, TransportError
from wipbot.config.schema import LimitsConfig

BurstFactory = Callable[[], Coroutine[Any, Any, Any]]


class CampaignScheduler:
    """Launches campaigns according to their resolved mode."""

    def __init__(
        self,
        transport: BaseTransport,
        supervisor: CampaignSupervisor,
        limits: LimitsConfig,
        sleep: Sleep = asyncio.sleep,
    ):
        self.transport = transport
        self.supervisor = supervisor
        self.limits = limits
        self.sleep = sleep

    async def launch(
        self,
        room_id: str,
        spec: CampaignSpec,
        label: str,
        noun: str,
        burst: BurstFactory,
    ) -> str | None:
        """
        Start a campaign.

        Args:
            room_id: Target room.
            spec: Resolved campaign.
            label: Short name for logs and the campaign id.
            noun: What is being sent, for the limit notice ("messages").
            burst: Creates the burst coroutine for BURST mode.

        Returns:
            Campaign id, or None if nothing was started.
        """
        if spec.mode == CampaignMode.NOOP:
            logger.debug(f"Zero-length {label} in {room_id}, nothing to do")
            return None

        if spec.mode == CampaignMode.CANNED:
            return self.supervisor.spawn(label, self._canned(room_id, spec.family))

        if spec.mode == CampaignMode.PUBLIC_FALLBACK:
            logger.info(f"Public room {room_id}, sending a sticker instead of {label}")
            return self.supervisor.spawn(label, self._single_sticker(room_id))

        if spec.was_limited:
            try:
                await self.transport.send(room_id, text_content(limit_notice(spec, noun), notice=True))
            except TransportError as e:
                logger.warning(f"Failed to send limit notice, dropping {label}: {e}")
                return None

        return self.supervisor.spawn(label, burst())

    async def _canned(self, room_id: str, family: CommandFamily) -> None:
        """One fixed response for senders who may not run bursts."""
        if family == CommandFamily.IMAGE:
            size = self.limits.default_image_size
            single = CampaignSpec(
                family=family,
                mode=CampaignMode.CANNED,
                requested_count=None,
                requested_delay=None,
                resolved_count=1,
            )
            await image_burst(self.transport, room_id, single, size, size, self.sleep)
            return

        try:
            if family == CommandFamily.STICKER:
                await send_sticker(self.transport, room_id, STICKER_CAPTIONS[0])
            else:
                await self.transport.send(room_id, text_content(CANNED_SPAM))
        except TransportError as e:
            logger.warning(f"Failed to send canned response in {room_id}: {e}")

    async def _single_sticker(self, room_id: str) -> None:
        try:
            await send_sticker(self.transport, room_id, STICKER_CAPTIONS[0])
        except TransportError as e:
            logger.warning(f"Failed to send sticker in {room_id}: {e}")
