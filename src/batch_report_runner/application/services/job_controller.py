"""Job start use case: build the worklist, reset progress, arm the first chunk."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Callable, Iterable
from uuid import uuid4

from batch_report_runner.application.services.destination_resolver import DestinationResolver
from batch_report_runner.application.services.trigger_manager import TriggerManager
from batch_report_runner.application.services.worklist import (
    RawRow,
    build_worklist,
    sample_work_items,
)
from batch_report_runner.domain.errors import ConfigurationError
from batch_report_runner.domain.models import Checkpoint, ContinuationDelays
from batch_report_runner.domain.ports import CheckpointStore

logger = logging.getLogger(__name__)


class JobController:
    """Start full or sampled job runs."""

    def __init__(
        self,
        job_name: str,
        checkpoint_store: CheckpointStore,
        trigger_manager: TriggerManager,
        destination_resolver: DestinationResolver,
        delays: ContinuationDelays,
        rng_factory: Callable[[int | None], random.Random] = random.Random,
        run_lock: asyncio.Lock | None = None,
    ) -> None:
        self._job_name = job_name
        self._checkpoint_store = checkpoint_store
        self._trigger_manager = trigger_manager
        self._destination_resolver = destination_resolver
        self._delays = delays
        self._rng_factory = rng_factory
        self._run_lock = run_lock or asyncio.Lock()

    async def start(
        self,
        rows: Iterable[RawRow] | None,
        sample_size: int | None = None,
        seed: int | None = None,
    ) -> Checkpoint:
        """Reset the job to a fresh worklist and arm the first continuation.

        Errors propagate to the caller; nothing is written to the run log.
        A chunk holding the shared run lock finishes before the reset.
        """

        if rows is None:
            raise ConfigurationError("A source list is required to start a job.")
        if sample_size is not None and sample_size < 1:
            raise ConfigurationError("sampleSize must be >= 1.")

        worklist = build_worklist(rows)
        if sample_size is not None:
            worklist = sample_work_items(worklist, sample_size, self._rng_factory(seed))

        container = await self._destination_resolver.resolve()
        checkpoint = Checkpoint(
            job_name=self._job_name,
            run_id=str(uuid4()),
            worklist=worklist,
            cursor=0,
            total=len(worklist),
            destination_ref=container.container_id,
        )
        async with self._run_lock:
            await self._checkpoint_store.save_checkpoint(checkpoint)
            await self._trigger_manager.clear_all()
            await self._trigger_manager.arm_after(self._delays.kickoff_seconds)

        logger.info(
            "Started job '%s' run '%s' with %s item(s)%s.",
            self._job_name,
            checkpoint.run_id,
            checkpoint.total,
            "" if sample_size is None else f" (sample of {sample_size})",
        )
        return checkpoint


__all__ = ["JobController"]
