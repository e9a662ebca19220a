"""
Campaigns: bounded bursts of messages, stickers, images or replies.

- policy: resolves count and delay against per-tier limits
- bursts: the coroutines that deliver a campaign
- scheduler: sends the limit notice and starts the burst
- supervisor: keeps track of detached campaign tasks
"""

from wipbot.campaigns.policy import (
    CampaignMode,
    CampaignSpec,
    CommandFamily,
    ceiling_for,
    resolve_campaign,
)
from wipbot.campaigns.scheduler import CampaignScheduler
from wipbot.campaigns.supervisor import CampaignSupervisor

__all__ = [
    "CampaignMode",
    "CampaignSpec",
    "CommandFamily",
    "ceiling_for",
    "resolve_campaign",
    "CampaignScheduler",
    "CampaignSupervisor",
]
