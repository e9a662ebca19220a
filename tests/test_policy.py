"""
Tests for campaign rate-limit policy.
"""

import pytest

from wipbot.campaigns.policy import (
    CampaignMode,
    CommandFamily,
    ceiling_for,
    limit_notice,
    resolve_campaign,
)
from wipbot.config.schema import LimitsConfig, TierLimits
from wipbot.security.trust import TrustTier

TABLE = 16


@pytest.fixture
def limits():
    return LimitsConfig(
        vip=TierLimits(text=500, sticker=100, image=50),
        trusted=TierLimits(text=100, sticker=20, image=10),
        max_delay_seconds=20,
    )


def resolve(limits, count=None, delay=None, tier=TrustTier.TRUSTED,
            family=CommandFamily.TEXT, public=False):
    return resolve_campaign(family, tier, public, limits, TABLE, count_token=count, delay_token=delay)


class TestCeilings:
    """Count ceilings per tier."""

    @pytest.mark.parametrize("tier", [TrustTier.TRUSTED, TrustTier.VIP])
    @pytest.mark.parametrize("count", [1, 7, 20, 100, 101, 500, 10_000])
    def test_count_never_exceeds_ceiling(self, limits, tier, count):
        ceiling = ceiling_for(tier, CommandFamily.TEXT, limits)
        spec = resolve(limits, count=str(count), tier=tier)

        assert spec.resolved_count <= ceiling
        if count <= ceiling:
            assert spec.resolved_count == count

    def test_families_have_separate_ceilings(self, limits):
        assert resolve(limits, "50", family=CommandFamily.TEXT).resolved_count == 50
        assert resolve(limits, "50", family=CommandFamily.STICKER).resolved_count == 20
        assert resolve(limits, "50", family=CommandFamily.IMAGE).resolved_count == 10

    def test_within_limits_is_not_limited(self, limits):
        spec = resolve(limits, "30")

        assert spec.mode == CampaignMode.BURST
        assert spec.resolved_count == 30
        assert not spec.was_limited

    def test_capped_count_is_limited(self, limits):
        spec = resolve(limits, "150")

        assert spec.resolved_count == 100
        assert spec.was_limited


class TestDefaults:
    """Missing or broken arguments."""

    @pytest.mark.parametrize("token", [None, "lots", "-3"])
    def test_default_count_is_table_length(self, limits, token):
        spec = resolve(limits, token)

        assert spec.resolved_count == TABLE
        assert spec.requested_count is None
        assert not spec.explicit_count

    def test_default_count_still_capped(self, limits):
        spec = resolve(limits, family=CommandFamily.IMAGE)

        assert spec.resolved_count == 10
        assert spec.was_limited

    def test_zero_count_is_noop(self, limits):
        spec = resolve(limits, "0", "5")

        assert spec.mode == CampaignMode.NOOP
        assert spec.resolved_count == 0
        assert not spec.was_limited


class TestDelay:
    """Delay clamping."""

    @pytest.mark.parametrize("delay", [1, 2, 3, 7, 20, 21, 100])
    def test_delayed_burst_fits_into_delay_ceiling(self, limits, delay):
        spec = resolve(limits, "500", str(delay), tier=TrustTier.VIP)

        assert spec.resolved_delay <= limits.max_delay_seconds
        assert spec.resolved_count * spec.resolved_delay <= limits.max_delay_seconds

    def test_trusted_spam_with_delay(self, limits):
        spec = resolve(limits, "30", "2")

        assert spec.resolved_delay == 2
        assert spec.resolved_count == 10
        assert spec.was_limited

    def test_any_delay_is_reported(self, limits):
        spec = resolve(limits, "5", "1")

        assert spec.resolved_count == 5
        assert spec.was_limited

    @pytest.mark.parametrize("token", ["0", "soon", "-1"])
    def test_invalid_delay_is_ignored(self, limits, token):
        spec = resolve(limits, "5", token)

        assert spec.resolved_delay == 0
        assert not spec.was_limited


class TestModes:
    """Public rooms and anonymous senders."""

    @pytest.mark.parametrize("tier", list(TrustTier))
    @pytest.mark.parametrize("count", [None, "1", "50", "1000"])
    def test_public_text_burst_is_single(self, limits, tier, count):
        spec = resolve(limits, count, tier=tier, public=True)

        assert spec.mode == CampaignMode.PUBLIC_FALLBACK
        assert spec.resolved_count == 1

    def test_public_sticker_burst_uses_ceiling(self, limits):
        spec = resolve(limits, "5", family=CommandFamily.STICKER, public=True)

        assert spec.mode == CampaignMode.BURST
        assert spec.resolved_count == 5

    @pytest.mark.parametrize("family", list(CommandFamily))
    def test_anonymous_gets_canned(self, limits, family):
        spec = resolve(limits, "50", tier=TrustTier.ANONYMOUS, family=family)

        assert spec.mode == CampaignMode.CANNED
        assert spec.resolved_count == 1
        assert not spec.was_limited


def test_limit_notice_text(limits):
    assert limit_notice(resolve(limits, "30", "2"), "messages") == "Limiting to 10 messages, one every 2s"
    assert limit_notice(resolve(limits, "150"), "messages") == "Limiting to 100 messages"
