"""
Burst executors.

Each burst is a coroutine meant to run as a detached task. Iterations run
strictly in order; the first TransportError is logged and ends the burst.
`sleep` is injectable so tests don't have to wait.
"""

import asyncio
from typing import Any, Awaitable, Callable

from loguru import logger

from wipbot.auto_reply.content import SPAM_MESSAGES, STICKER_CAPTIONS, format_item, pick
from wipbot.campaigns.policy import CampaignSpec
from wipbot.channels.base import BaseTransport, TransportError
from wipbot.media.images import STICKER_SIZE, RenderedImage, render_numbered

Sleep = Callable[[float], Awaitable[Any]]


# =============================================================================
# Event content
# =============================================================================

def text_content(body: str, notice: bool = False) -> dict[str, Any]:
    """Plain m.text or m.notice content."""
    return {"msgtype": "m.notice" if notice else "m.text", "body": body}


def reply_content(body: str, reply_to: str, thread_root: str | None = None) -> dict[str, Any]:
    """Text content replying to `reply_to`, optionally inside a thread."""
    content = text_content(body)
    if thread_root:
        content["m.relates_to"] = {
            "rel_type": "m.thread",
            "event_id": thread_root,
            "is_falling_back": False,
            "m.in_reply_to": {"event_id": reply_to},
        }
    else:
        content["m.relates_to"] = {"m.in_reply_to": {"event_id": reply_to}}
    return content


def sticker_content(body: str, url: str, info: dict[str, Any]) -> dict[str, Any]:
    """Content for an m.sticker event."""
    return {"body": body, "url": url, "info": info}


def image_content(body: str, url: str, info: dict[str, Any]) -> dict[str, Any]:
    """Content for an m.image message."""
    return {"msgtype": "m.image", "body": body, "url": url, "info": info}


# =============================================================================
# Helpers
# =============================================================================

async def _pace(spec: CampaignSpec, sleep: Sleep) -> None:
    if spec.resolved_delay > 0:
        await sleep(spec.resolved_delay)


async def upload_image(transport: BaseTransport, image: RenderedImage, filename: str) -> str:
    """Upload rendered PNG bytes and return the mxc uri."""
    return await transport.upload_media(image.data, image.mimetype, filename)


async def send_sticker(
    transport: BaseTransport,
    room_id: str,
    caption: str,
    index: int = 0,
) -> str:
    """Render, upload and send one sticker. Returns the sticker's event id."""
    image = render_numbered(caption, index, STICKER_SIZE, STICKER_SIZE)
    url = await upload_image(transport, image, "sticker.png")
    return await transport.send(room_id, sticker_content(caption, url, image.info), "m.sticker")


# =============================================================================
# Bursts
# =============================================================================

async def text_burst(
    transport: BaseTransport,
    room_id: str,
    spec: CampaignSpec,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """
    Send `spec.resolved_count` text messages.

    Returns:
        Number of messages delivered.
    """
    sent = 0
    for index in range(spec.resolved_count):
        await _pace(spec, sleep)
        body = format_item(pick(SPAM_MESSAGES, index), index, spec.explicit_count)
        try:
            await transport.send(room_id, text_content(body))
        except TransportError as e:
            logger.warning(f"Spam in {room_id} aborted after {sent} messages: {e}")
            break
        sent += 1
    logger.info(f"Sent {sent}/{spec.resolved_count} spam messages to {room_id}")
    return sent


async def sticker_burst(
    transport: BaseTransport,
    room_id: str,
    spec: CampaignSpec,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """
    Send `spec.resolved_count` generated stickers.

    Each caption is uploaded once per burst and reused when the table wraps.

    Returns:
        Number of stickers delivered.
    """
    uploads: dict[int, tuple[str, dict[str, Any]]] = {}
    sent = 0
    for index in range(spec.resolved_count):
        await _pace(spec, sleep)
        slot = index % len(STICKER_CAPTIONS)
        caption = pick(STICKER_CAPTIONS, index)
        try:
            if slot not in uploads:
                image = render_numbered(caption, slot, STICKER_SIZE, STICKER_SIZE)
                uploads[slot] = (await upload_image(transport, image, f"sticker-{slot}.png"), image.info)
            url, info = uploads[slot]
            body = format_item(caption, index, spec.explicit_count)
            await transport.send(room_id, sticker_content(body, url, info), "m.sticker")
        except TransportError as e:
            logger.warning(f"Sticker spam in {room_id} aborted after {sent} stickers: {e}")
            break
        sent += 1
    logger.info(f"Sent {sent}/{spec.resolved_count} stickers to {room_id}")
    return sent


async def image_burst(
    transport: BaseTransport,
    room_id: str,
    spec: CampaignSpec,
    width: int,
    height: int,
    sleep: Sleep = asyncio.sleep,
) -> int:
    """
    Send `spec.resolved_count` generated images of the given size.

    Returns:
        Number of images delivered.
    """
    sent = 0
    for index in range(spec.resolved_count):
        await _pace(spec, sleep)
        label = str(index + 1)
        image = render_numbered(label, index, width, height)
        try:
            url = await upload_image(transport, image, f"image-{label}.png")
            body = format_item(f"{width}x{height}.png", index, spec.explicit_count)
            await transport.send(room_id, image_content(body, url, image.info))
        except TransportError as e:
            logger.warning(f"Image spam in {room_id} aborted after {sent} images: {e}")
            break
        sent += 1
    logger.info(f"Sent {sent}/{spec.resolved_count} images to {room_id}")
    return sent


async def reply_chain(
    transport: BaseTransport,
    room_id: str,
    spec: CampaignSpec,
    first_target: str,
    thread_root: str | None = None,
    sleep: Sleep = asyncio.sleep,
) -> list[str]:
    """
    Send a chain where each message replies to the previous one.

    The first message replies to `first_target`. With `thread_root` set, all
    messages are posted in that thread.

    Returns:
        Event ids of the delivered chain, in order.
    """
    chain: list[str] = []
    reply_to = first_target
    for index in range(spec.resolved_count):
        await _pace(spec, sleep)
        body = format_item(pick(SPAM_MESSAGES, index), index, spec.explicit_count)
        try:
            reply_to = await transport.send(room_id, reply_content(body, reply_to, thread_root))
        except TransportError as e:
            logger.warning(f"Reply chain in {room_id} truncated at {len(chain)}: {e}")
            break
        chain.append(reply_to)
    logger.info(f"Sent {len(chain)}/{spec.resolved_count} chained replies to {room_id}")
    return chain


async def typing_burst(
    transport: BaseTransport,
    room_id: str,
    seconds: int,
    sleep: Sleep = asyncio.sleep,
) -> bool:
    """Show a typing notification for `seconds`, then clear it."""
    try:
        await transport.send_typing(room_id, True, timeout_ms=seconds * 1000)
        await sleep(seconds)
        await transport.send_typing(room_id, False)
    except TransportError as e:
        logger.warning(f"Typing in {room_id} failed: {e}")
        return False
    return True
