"""
Tests for burst executors and content selection.
"""

import pytest

from conftest import FakeTransport, ROOM_ID
from wipbot.auto_reply.content import SPAM_MESSAGES, STICKER_CAPTIONS, format_item, pick
from wipbot.campaigns.bursts import (
    image_burst,
    reply_chain,
    sticker_burst,
    text_burst,
    typing_burst,
)
from wipbot.campaigns.policy import CampaignMode, CampaignSpec, CommandFamily


def make_spec(count, delay=0, requested=None, family=CommandFamily.TEXT):
    return CampaignSpec(
        family=family,
        mode=CampaignMode.BURST,
        requested_count=requested,
        requested_delay=delay or None,
        resolved_count=count,
        resolved_delay=delay,
    )


class TestContent:
    """Cyclic content tables."""

    def test_pick_wraps_around(self):
        length = len(SPAM_MESSAGES)
        for index in (0, 1, length - 1, length, length + 3, 10 * length + 5):
            assert pick(SPAM_MESSAGES, index) == SPAM_MESSAGES[index % length]

    def test_tables_are_not_empty(self):
        assert SPAM_MESSAGES
        assert STICKER_CAPTIONS

    def test_format_item(self):
        assert format_item("Spam", 0, numbered=True) == "1: Spam"
        assert format_item("Spam", 4, numbered=False) == "Spam"


class TestTextBurst:
    """Tests for text_burst."""

    @pytest.mark.asyncio
    async def test_sends_in_order_without_prefix(self, transport, sleep):
        sent = await text_burst(transport, ROOM_ID, make_spec(3), sleep)

        assert sent == 3
        assert transport.bodies == list(SPAM_MESSAGES[:3])
        assert sleep.calls == []

    @pytest.mark.asyncio
    async def test_explicit_count_is_numbered_and_wraps(self, transport, sleep):
        count = len(SPAM_MESSAGES) + 2
        await text_burst(transport, ROOM_ID, make_spec(count, requested=count), sleep)

        assert transport.bodies[0] == f"1: {SPAM_MESSAGES[0]}"
        assert transport.bodies[-1] == f"{count}: {SPAM_MESSAGES[1]}"

    @pytest.mark.asyncio
    async def test_sleeps_between_messages(self, transport, sleep):
        await text_burst(transport, ROOM_ID, make_spec(4, delay=5), sleep)

        assert sleep.calls == [5, 5, 5, 5]

    @pytest.mark.asyncio
    async def test_failure_aborts_remaining(self, sleep):
        transport = FakeTransport(fail_sends_after=2)

        sent = await text_burst(transport, ROOM_ID, make_spec(10), sleep)

        assert sent == 2
        assert len(transport.sent) == 2

    @pytest.mark.asyncio
    async def test_zero_count(self, transport, sleep):
        assert await text_burst(transport, ROOM_ID, make_spec(0), sleep) == 0
        assert transport.sent == []


class TestReplyChain:
    """Tests for reply_chain."""

    @pytest.mark.asyncio
    async def test_each_message_replies_to_previous(self, transport, sleep):
        chain = await reply_chain(transport, ROOM_ID, make_spec(3), "$command", sleep=sleep)

        targets = [c["m.relates_to"]["m.in_reply_to"]["event_id"] for _, _, c in transport.sent]
        assert chain == ["$event1", "$event2", "$event3"]
        assert targets == ["$command", "$event1", "$event2"]

    @pytest.mark.asyncio
    async def test_thread_relation(self, transport, sleep):
        await reply_chain(transport, ROOM_ID, make_spec(2), "$root", thread_root="$root", sleep=sleep)

        first = transport.sent[0][2]["m.relates_to"]
        second = transport.sent[1][2]["m.relates_to"]
        assert first["rel_type"] == "m.thread"
        assert first["event_id"] == "$root"
        assert second["event_id"] == "$root"
        assert second["m.in_reply_to"]["event_id"] == "$event1"

    @pytest.mark.asyncio
    async def test_failure_truncates_chain(self, sleep):
        transport = FakeTransport(fail_sends_after=2)

        chain = await reply_chain(transport, ROOM_ID, make_spec(5), "$command", sleep=sleep)

        assert chain == ["$event1", "$event2"]


class TestMediaBursts:
    """Tests for sticker and image bursts."""

    @pytest.mark.asyncio
    async def test_sticker_uploads_are_reused(self, transport, sleep):
        count = len(STICKER_CAPTIONS) + 3
        spec = make_spec(count, family=CommandFamily.STICKER)

        sent = await sticker_burst(transport, ROOM_ID, spec, sleep)

        assert sent == count
        assert len(transport.uploads) == len(STICKER_CAPTIONS)
        assert set(transport.event_types) == {"m.sticker"}
        first, wrapped = transport.sent[0][2], transport.sent[len(STICKER_CAPTIONS)][2]
        assert first["url"] == wrapped["url"]

    @pytest.mark.asyncio
    async def test_image_burst_sizes(self, transport, sleep):
        spec = make_spec(2, family=CommandFamily.IMAGE)

        sent = await image_burst(transport, ROOM_ID, spec, 64, 32, sleep)

        assert sent == 2
        assert len(transport.uploads) == 2
        content = transport.sent[0][2]
        assert content["msgtype"] == "m.image"
        assert content["info"]["w"] == 64
        assert content["info"]["h"] == 32
        assert content["url"] == "mxc://test.example/1"

    @pytest.mark.asyncio
    async def test_image_failure_aborts(self, sleep):
        transport = FakeTransport(fail_sends_after=1)
        spec = make_spec(3, family=CommandFamily.IMAGE)

        assert await image_burst(transport, ROOM_ID, spec, 16, 16, sleep) == 1


@pytest.mark.asyncio
async def test_typing_burst(transport, sleep):
    assert await typing_burst(transport, ROOM_ID, 7, sleep)

    assert transport.typing == [(ROOM_ID, True), (ROOM_ID, False)]
    assert sleep.calls == [7]
