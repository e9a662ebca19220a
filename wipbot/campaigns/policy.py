"""
Rate-limit policy for campaigns.

Turns a command's raw count/delay arguments into a bounded CampaignSpec.
Rules, in order of precedence:
1. A zero count is a no-op.
2. Text bursts in public rooms degrade to a single sticker.
3. Anonymous senders get one canned response instead of a burst.
4. The count (default: content table length) is capped by the tier ceiling.
5. A positive delay is capped by max_delay_seconds and additionally caps
   the count so the whole burst fits into max_delay_seconds.
"""

from dataclasses import dataclass
from enum import Enum

from wipbot.auto_reply.commands import parse_count
from wipbot.config.schema import LimitsConfig
from wipbot.security.trust import TrustTier


class CommandFamily(str, Enum):
    """Command families with independently configured ceilings."""
    TEXT = "text"
    STICKER = "sticker"
    IMAGE = "image"


class CampaignMode(str, Enum):
    """How a campaign is delivered."""
    BURST = "burst"
    CANNED = "canned"  # Anonymous sender: one fixed response
    PUBLIC_FALLBACK = "public_fallback"  # Public room: one sticker instead of text
    NOOP = "noop"


@dataclass(frozen=True)
class CampaignSpec:
    """Resolved size and pacing of a campaign."""
    family: CommandFamily
    mode: CampaignMode
    requested_count: int | None
    requested_delay: int | None
    resolved_count: int
    resolved_delay: int = 0
    was_limited: bool = False

    @property
    def explicit_count(self) -> bool:
        """Whether the sender asked for a specific count."""
        return self.requested_count is not None


def ceiling_for(tier: TrustTier, family: CommandFamily, limits: LimitsConfig) -> int:
    """Maximum burst length for a tier and family."""
    if tier == TrustTier.VIP:
        return getattr(limits.vip, family.value)
    if tier == TrustTier.TRUSTED:
        return getattr(limits.trusted, family.value)
    return 1


def parse_delay(token: str | None) -> int | None:
    """Parse a delay argument. Only positive integers count."""
    value = parse_count(token)
    return value if value else None


def resolve_campaign(
    family: CommandFamily,
    tier: TrustTier,
    room_is_public: bool,
    limits: LimitsConfig,
    table_length: int,
    count_token: str | None = None,
    delay_token: str | None = None,
) -> CampaignSpec:
    """
    Resolve the effective count and delay of a campaign.

    Args:
        family: Command family, selects the ceiling.
        tier: Trust tier of the sender.
        room_is_public: Whether the room's join rule is public.
        limits: Configured limits.
        table_length: Default count when no count is given.
        count_token: Raw count argument, if any.
        delay_token: Raw delay argument, if any.

    Returns:
        CampaignSpec with resolved_count/resolved_delay inside all limits.
    """
    requested_count = parse_count(count_token)
    requested_delay = parse_delay(delay_token)

    def fixed(mode: CampaignMode, count: int) -> CampaignSpec:
        return CampaignSpec(
            family=family,
            mode=mode,
            requested_count=requested_count,
            requested_delay=requested_delay,
            resolved_count=count,
        )

    if requested_count == 0:
        return fixed(CampaignMode.NOOP, 0)

    if room_is_public and family == CommandFamily.TEXT:
        return fixed(CampaignMode.PUBLIC_FALLBACK, 1)

    if tier == TrustTier.ANONYMOUS:
        return fixed(CampaignMode.CANNED, 1)

    wanted = requested_count if requested_count is not None else table_length
    count = min(wanted, ceiling_for(tier, family, limits))

    delay = 0
    if requested_delay is not None:
        delay = min(requested_delay, limits.max_delay_seconds)
        if delay > 0:
            count = min(count, limits.max_delay_seconds // delay)

    return CampaignSpec(
        family=family,
        mode=CampaignMode.BURST,
        requested_count=requested_count,
        requested_delay=requested_delay,
        resolved_count=count,
        resolved_delay=delay,
        was_limited=count < wanted or delay > 0,
    )


def limit_notice(spec: CampaignSpec, noun: str) -> str:
    """User-facing notice sent before a limited burst starts."""
    text = f"Limiting to {spec.resolved_count} {noun}"
    if spec.resolved_delay:
        text += f", one every {spec.resolved_delay}s"
    return text
