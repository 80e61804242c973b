"""Singleton continuation scheduling for one job."""

from __future__ import annotations

import logging

from batch_report_runner.domain.models import TriggerHandle
from batch_report_runner.domain.ports import TriggerRepository

logger = logging.getLogger(__name__)


class TriggerManager:
    """Arm and cancel the single pending continuation of a job.

    `arm_after` always replaces whatever is pending, so at most one handle
    exists after every call.
    """

    def __init__(self, job_name: str, repository: TriggerRepository) -> None:
        self._job_name = job_name
        self._repository = repository

    @property
    def job_name(self) -> str:
        return self._job_name

    async def clear_all(self) -> int:
        """Remove all pending continuations; no-op when none exist."""

        removed = await self._repository.clear_triggers(self._job_name)
        if removed:
            logger.debug("Cleared %s pending trigger(s) for job '%s'.", removed, self._job_name)
        return removed

    async def arm_after(self, delay_seconds: float) -> TriggerHandle:
        """Replace pending continuations with one firing after `delay_seconds`."""

        handle = await self._repository.replace_triggers(self._job_name, max(delay_seconds, 0.0))
        logger.debug(
            "Armed trigger '%s' for job '%s' at %s.",
            handle.trigger_id,
            self._job_name,
            handle.fire_at.isoformat(),
        )
        return handle

    async def pending(self) -> list[TriggerHandle]:
        return await self._repository.list_triggers(self._job_name)


__all__ = ["TriggerManager"]
