"""Background worker that fires due continuations."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from contextlib import suppress

from batch_report_runner.domain.models import ChunkReport
from batch_report_runner.domain.ports import TriggerRepository

logger = logging.getLogger(__name__)

ChunkRunner = Callable[[], Awaitable[ChunkReport]]


class ContinuationDispatcher:
    """Poll for due triggers of one job and run a chunk for each claim."""

    def __init__(
        self,
        job_name: str,
        trigger_repository: TriggerRepository,
        run_chunk: ChunkRunner,
        *,
        poll_interval_seconds: float = 1.0,
        batch_size: int = 10,
    ) -> None:
        self._job_name = job_name
        self._trigger_repository = trigger_repository
        self._run_chunk = run_chunk
        self._poll_interval_seconds = max(poll_interval_seconds, 0.01)
        self._batch_size = max(batch_size, 1)

        self._task: asyncio.Task[None] | None = None
        self._wake_event = asyncio.Event()
        self._stopping = asyncio.Event()
        self._lifecycle_lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start dispatcher background loop if not already running."""

        async with self._lifecycle_lock:
            task = self._task
            if task is not None and not task.done():
                return

            self._stopping = asyncio.Event()
            self._wake_event = asyncio.Event()
            self._wake_event.set()
            self._task = asyncio.create_task(
                self._run_loop(),
                name=f"continuation-dispatcher-{self._job_name}",
            )

    async def stop(self) -> None:
        """Stop dispatcher background loop."""

        async with self._lifecycle_lock:
            task = self._task
            if task is None:
                return
            self._task = None

            self._stopping.set()
            self._wake_event.set()
            task.cancel()

        with suppress(asyncio.CancelledError):
            await task

    def wake(self) -> None:
        """Wake the loop so a freshly armed trigger is noticed quickly."""

        self._wake_event.set()

    async def dispatch_due_once(self) -> int:
        """Claim due triggers and run one chunk; return the claimed count.

        Several due handles for the same job still run a single chunk.
        """

        claimed = await self._trigger_repository.claim_due_triggers(
            self._job_name,
            limit=self._batch_size,
        )
        if not claimed:
            return 0

        if len(claimed) > 1:
            logger.warning(
                "Claimed %s due triggers for job '%s'; running one chunk.",
                len(claimed),
                self._job_name,
            )
        report = await self._run_chunk()
        logger.debug(
            "Continuation '%s' for job '%s' finished with %s.",
            claimed[0].trigger_id,
            self._job_name,
            report.status.value,
        )
        return len(claimed)

    async def _run_loop(self) -> None:
        while not self._stopping.is_set():
            try:
                processed = await self.dispatch_due_once()
            except Exception:
                logger.exception(
                    "Continuation dispatcher loop failed for job '%s'.",
                    self._job_name,
                )
                processed = 0

            if processed > 0:
                continue

            self._wake_event.clear()
            try:
                await asyncio.wait_for(
                    self._wake_event.wait(),
                    timeout=self._poll_interval_seconds,
                )
            except TimeoutError:
                pass


__all__ = ["ChunkRunner", "ContinuationDispatcher"]
