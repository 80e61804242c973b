"""In-memory repository implementation for batch job state."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from batch_report_runner.domain.models import Checkpoint, LogRecord, TriggerHandle
from batch_report_runner.domain.ports import (
    CheckpointStore,
    RunLogRepository,
    TriggerRepository,
)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class InMemoryBatchJobRepository(
    CheckpointStore,
    TriggerRepository,
    RunLogRepository,
):
    """Simple repository for local development and tests.

    State lives only as long as the process; use the Postgres backend when
    runs must survive restarts.
    """

    def __init__(self, now: Callable[[], datetime] = _utc_now) -> None:
        self._now = now
        self._lock = asyncio.Lock()
        self._checkpoints: dict[str, Checkpoint] = {}
        self._triggers: dict[str, dict[str, TriggerHandle]] = {}
        self._log_records: dict[str, list[LogRecord]] = {}

    async def load_checkpoint(self, job_name: str) -> Checkpoint | None:
        """Return the stored checkpoint."""

        return self._checkpoints.get(job_name)

    async def save_checkpoint(
        self,
        checkpoint: Checkpoint,
        *,
        expected_run_id: str | None = None,
    ) -> bool:
        """Persist a checkpoint, keeping the cursor monotonic within one run."""

        async with self._lock:
            existing = self._checkpoints.get(checkpoint.job_name)
            if expected_run_id is not None and (
                existing is None or existing.run_id != expected_run_id
            ):
                return False
            if existing is not None and existing.run_id == checkpoint.run_id:
                checkpoint = replace(
                    checkpoint,
                    cursor=max(existing.cursor, checkpoint.cursor),
                    finalized=existing.finalized or checkpoint.finalized,
                )
            self._checkpoints[checkpoint.job_name] = checkpoint
            return True

    async def clear_triggers(self, job_name: str) -> int:
        """Drop all pending triggers for a job."""

        async with self._lock:
            removed = self._triggers.pop(job_name, {})
            return len(removed)

    async def replace_triggers(self, job_name: str, delay_seconds: float) -> TriggerHandle:
        """Clear and arm under one lock."""

        handle = TriggerHandle(
            trigger_id=str(uuid4()),
            job_name=job_name,
            fire_at=self._now() + timedelta(seconds=max(delay_seconds, 0.0)),
        )
        async with self._lock:
            self._triggers[job_name] = {handle.trigger_id: handle}
        return handle

    async def list_triggers(self, job_name: str) -> list[TriggerHandle]:
        """Return pending triggers ordered by fire time."""

        async with self._lock:
            handles = list(self._triggers.get(job_name, {}).values())
        return sorted(handles, key=lambda handle: (handle.fire_at, handle.trigger_id))

    async def claim_due_triggers(self, job_name: str, *, limit: int) -> list[TriggerHandle]:
        """Remove and return due triggers."""

        now = self._now()
        async with self._lock:
            pending = self._triggers.get(job_name, {})
            due = sorted(
                (handle for handle in pending.values() if handle.fire_at <= now),
                key=lambda handle: (handle.fire_at, handle.trigger_id),
            )
            claimed = due[: max(limit, 0)]
            for handle in claimed:
                pending.pop(handle.trigger_id, None)
            return claimed

    async def append_log_record(self, job_name: str, record: LogRecord) -> None:
        """Append one run log record."""

        async with self._lock:
            self._log_records.setdefault(job_name, []).append(record)

    async def list_log_records(self, job_name: str, *, limit: int = 100) -> list[LogRecord]:
        """Return the most recent records in append order."""

        async with self._lock:
            records = self._log_records.get(job_name, [])
            if limit <= 0:
                return []
            return list(records[-limit:])


__all__ = ["InMemoryBatchJobRepository"]
