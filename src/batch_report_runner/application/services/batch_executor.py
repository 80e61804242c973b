"""Time-budgeted chunk execution over a persisted checkpoint."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import Counter
from collections.abc import Awaitable, Callable
from dataclasses import replace

from batch_report_runner.application.services.destination_resolver import DestinationResolver
from batch_report_runner.application.services.item_processor import ItemProcessor
from batch_report_runner.application.services.trigger_manager import TriggerManager
from batch_report_runner.domain.errors import RunSupersededError
from batch_report_runner.domain.models import (
    Checkpoint,
    ChunkOutcome,
    ChunkReport,
    ChunkStatus,
    ContainerRef,
    ContinuationDecision,
    ContinuationDelays,
    ContinuationKind,
    LogRecord,
    WorkItem,
)
from batch_report_runner.domain.ports import (
    BatchEventPublisher,
    CheckpointStore,
    RunLogRepository,
)

Clock = Callable[[], float]
ItemHandler = Callable[[WorkItem], Awaitable[LogRecord]]

logger = logging.getLogger(__name__)


async def advance_chunk(
    checkpoint: Checkpoint,
    process_item: ItemHandler,
    *,
    chunk_size: int,
    time_budget_seconds: float,
    delays: ContinuationDelays,
    clock: Clock = time.monotonic,
) -> ChunkOutcome:
    """Process items from the checkpoint cursor and decide what happens next.

    Stops after `chunk_size` items, at the end of the worklist, or before the
    next item once the time budget is spent. Exceptions from `process_item`
    propagate and leave the input checkpoint untouched.
    """

    started_at = clock()
    index = checkpoint.cursor
    records: list[LogRecord] = []
    interrupted = False
    while index < checkpoint.total and len(records) < chunk_size:
        if clock() - started_at > time_budget_seconds:
            interrupted = True
            break
        records.append(await process_item(checkpoint.worklist[index]))
        index += 1

    advanced = checkpoint.advanced_to(index)
    if interrupted:
        decision = ContinuationDecision.arm_after(delays.interrupted_seconds)
    elif advanced.completed:
        decision = ContinuationDecision.finalize()
    else:
        decision = ContinuationDecision.arm_after(delays.cooldown_seconds)
    return ChunkOutcome(
        checkpoint=advanced,
        decision=decision,
        records=tuple(records),
        interrupted=interrupted,
    )


class BatchExecutor:
    """Run one chunk per continuation and re-arm until the worklist is done."""

    def __init__(
        self,
        job_name: str,
        checkpoint_store: CheckpointStore,
        run_log: RunLogRepository,
        trigger_manager: TriggerManager,
        destination_resolver: DestinationResolver,
        item_processor: ItemProcessor,
        event_publisher: BatchEventPublisher,
        *,
        chunk_size: int,
        time_budget_seconds: float,
        delays: ContinuationDelays,
        clock: Clock = time.monotonic,
        run_lock: asyncio.Lock | None = None,
    ) -> None:
        self._job_name = job_name
        self._checkpoint_store = checkpoint_store
        self._run_log = run_log
        self._trigger_manager = trigger_manager
        self._destination_resolver = destination_resolver
        self._item_processor = item_processor
        self._event_publisher = event_publisher
        self._chunk_size = max(chunk_size, 1)
        self._time_budget_seconds = time_budget_seconds
        self._delays = delays
        self._clock = clock
        self._run_lock = run_lock or asyncio.Lock()

    async def run_chunk(self) -> ChunkReport:
        """Execute one chunk; chunk-level failures are reported, not raised."""

        async with self._run_lock:
            report = await self._run_chunk_locked()
        await self._publish(report)
        return report

    async def resume_stalled_run(self) -> bool:
        """Arm a continuation for an unfinished run that has none pending.

        A chunk interrupted by a crash may already have consumed its trigger;
        this is called on startup so such runs pick up where they left off.
        """

        async with self._run_lock:
            checkpoint = await self._checkpoint_store.load_checkpoint(self._job_name)
            if checkpoint is None or checkpoint.finalized:
                return False
            if await self._trigger_manager.pending():
                return False
            await self._trigger_manager.arm_after(self._delays.kickoff_seconds)
        logger.info(
            "Re-armed stalled run '%s' of job '%s' at cursor %s of %s.",
            checkpoint.run_id,
            self._job_name,
            checkpoint.cursor,
            checkpoint.total,
        )
        return True

    async def _run_chunk_locked(self) -> ChunkReport:
        checkpoint: Checkpoint | None = None
        try:
            await self._trigger_manager.clear_all()
            checkpoint = await self._checkpoint_store.load_checkpoint(self._job_name)
            if checkpoint is None:
                logger.debug("No checkpoint for job '%s'; nothing to resume.", self._job_name)
                return ChunkReport(job_name=self._job_name, status=ChunkStatus.NO_CHECKPOINT)
            if checkpoint.finalized:
                return self._report(checkpoint, checkpoint, ChunkStatus.COMPLETED)

            container, checkpoint = await self._resolve_container(checkpoint)
            outcome = await advance_chunk(
                checkpoint,
                lambda item: self._process_and_log(item, container),
                chunk_size=self._chunk_size,
                time_budget_seconds=self._time_budget_seconds,
                delays=self._delays,
                clock=self._clock,
            )
            await self._save(outcome.checkpoint)
            status = await self._apply_decision(outcome)
        except RunSupersededError as exc:
            assert checkpoint is not None
            logger.info("Chunk for job '%s' dropped: %s", self._job_name, exc)
            return replace(
                self._report(checkpoint, checkpoint, ChunkStatus.SUPERSEDED),
                error=str(exc),
            )
        except asyncio.CancelledError:
            logger.warning(
                "Chunk for job '%s' cancelled. Retrying in %ss.",
                self._job_name,
                self._delays.interrupted_seconds,
            )
            await self._rearm_interrupted()
            raise
        except Exception as exc:  # noqa: BLE001
            return await self._abort(checkpoint, exc)

        logger.info(
            "Job '%s' chunk %s: cursor %s -> %s of %s.",
            self._job_name,
            status.value,
            checkpoint.cursor,
            outcome.checkpoint.cursor,
            outcome.checkpoint.total,
        )
        return self._report(checkpoint, outcome.checkpoint, status, outcome.records)

    async def _save(self, checkpoint: Checkpoint) -> None:
        saved = await self._checkpoint_store.save_checkpoint(
            checkpoint,
            expected_run_id=checkpoint.run_id,
        )
        if not saved:
            raise RunSupersededError(
                f"run '{checkpoint.run_id}' was replaced by a newer run"
            )

    async def _resolve_container(self, checkpoint: Checkpoint) -> tuple[ContainerRef, Checkpoint]:
        container = await self._destination_resolver.resolve(checkpoint.destination_ref)
        if container.container_id != checkpoint.destination_ref:
            checkpoint = checkpoint.with_destination(container.container_id)
            await self._save(checkpoint)
        return container, checkpoint

    async def _process_and_log(self, item: WorkItem, container: ContainerRef) -> LogRecord:
        record = await self._item_processor.process(item, container)
        await self._run_log.append_log_record(self._job_name, record)
        return record

    async def _apply_decision(self, outcome: ChunkOutcome) -> ChunkStatus:
        if outcome.decision.kind is ContinuationKind.FINALIZE:
            await self._run_log.append_log_record(
                self._job_name,
                LogRecord.complete(outcome.checkpoint.total),
            )
            await self._save(outcome.checkpoint.as_finalized())
            await self._trigger_manager.clear_all()
            return ChunkStatus.COMPLETED

        assert outcome.decision.delay_seconds is not None
        await self._trigger_manager.arm_after(outcome.decision.delay_seconds)
        return ChunkStatus.INTERRUPTED if outcome.interrupted else ChunkStatus.CONTINUED

    async def _abort(self, checkpoint: Checkpoint | None, exc: Exception) -> ChunkReport:
        error = str(exc).strip() or type(exc).__name__
        logger.warning(
            "Chunk for job '%s' aborted: %s. Retrying in %ss.",
            self._job_name,
            error,
            self._delays.interrupted_seconds,
        )
        await self._rearm_interrupted()

        if checkpoint is None:
            return ChunkReport(job_name=self._job_name, status=ChunkStatus.ABORTED, error=error)
        return replace(self._report(checkpoint, checkpoint, ChunkStatus.ABORTED), error=error)

    async def _rearm_interrupted(self) -> None:
        try:
            await self._trigger_manager.arm_after(self._delays.interrupted_seconds)
        except Exception:
            logger.exception("Failed to re-arm continuation for job '%s'.", self._job_name)

    def _report(
        self,
        before: Checkpoint,
        after: Checkpoint,
        status: ChunkStatus,
        records: tuple[LogRecord, ...] = (),
    ) -> ChunkReport:
        counts = Counter(record.status.value for record in records)
        return ChunkReport(
            job_name=self._job_name,
            status=status,
            run_id=after.run_id,
            cursor_before=before.cursor,
            cursor_after=after.cursor,
            total=after.total,
            processed=len(records),
            status_counts=dict(counts),
        )

    async def _publish(self, report: ChunkReport) -> None:
        try:
            await self._event_publisher.publish_chunk(report)
        except Exception:
            logger.exception("Failed to publish chunk event for job '%s'.", self._job_name)


__all__ = ["BatchExecutor", "Clock", "ItemHandler", "advance_chunk"]
