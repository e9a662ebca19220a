"""
Registry of detached campaign tasks.

Campaigns are fire-and-forget: nobody awaits them during normal operation.
The supervisor keeps a handle on each one so they are not garbage collected,
their failures get logged, and tests can wait for them to finish.
"""

import asyncio
import itertools
from typing import Any, Coroutine

from loguru import logger


class CampaignSupervisor:
    """Tracks running campaign tasks by id."""

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}
        self._ids = itertools.count(1)

        # Stats
        self._started = 0
        self._finished = 0
        self._failed = 0

    def spawn(self, label: str, coro: Coroutine[Any, Any, Any]) -> str:
        """
        Start a coroutine as a detached task.

        Args:
            label: Short name for logs, e.g. "spam" or "join".
            coro: The campaign coroutine.

        Returns:
            Campaign id.
        """
        campaign_id = f"{label}-{next(self._ids)}"
        task = asyncio.create_task(coro, name=campaign_id)
        self._tasks[campaign_id] = task
        self._started += 1
        task.add_done_callback(lambda t: self._on_done(campaign_id, t))
        logger.debug(f"Started campaign {campaign_id}")
        return campaign_id

    def _on_done(self, campaign_id: str, task: asyncio.Task) -> None:
        self._tasks.pop(campaign_id, None)
        self._finished += 1

        if task.cancelled():
            logger.debug(f"Campaign {campaign_id} cancelled")
            return

        error = task.exception()
        if error is not None:
            self._failed += 1
            logger.opt(exception=error).error(f"Campaign {campaign_id} crashed")
        else:
            logger.debug(f"Campaign {campaign_id} finished")

    @property
    def active(self) -> list[str]:
        """Ids of campaigns still running."""
        return list(self._tasks)

    def is_running(self, campaign_id: str) -> bool:
        return campaign_id in self._tasks

    async def wait_idle(self) -> None:
        """Wait until every campaign, including ones spawned meanwhile, is done."""
        while self._tasks:
            await asyncio.gather(*self._tasks.values(), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel everything still running. Only used on process exit."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def get_stats(self) -> dict[str, int]:
        """Get supervisor statistics."""
        return {
            "active": len(self._tasks),
            "started": self._started,
            "finished": self._finished,
            "failed": self._failed,
        }
