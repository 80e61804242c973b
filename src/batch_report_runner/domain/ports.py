"""Ports for checkpoint storage, triggers, destinations, and rendering."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from batch_report_runner.domain.models import (
    ArtifactRef,
    Checkpoint,
    ChunkReport,
    ContainerRef,
    LogRecord,
    RenderLayout,
    TriggerHandle,
    WorkItem,
)


@runtime_checkable
class CheckpointStore(Protocol):
    """Durable progress persistence shared by independent executions."""

    async def load_checkpoint(self, job_name: str) -> Checkpoint | None:
        """Return the stored checkpoint, or `None` when no run was started."""

    async def save_checkpoint(
        self,
        checkpoint: Checkpoint,
        *,
        expected_run_id: str | None = None,
    ) -> bool:
        """Persist a checkpoint; the cursor never moves backwards within a run.

        With `expected_run_id`, only update a stored checkpoint of that run and
        return `False` when another run has replaced it.
        """


@runtime_checkable
class TriggerRepository(Protocol):
    """Pending continuation handles for a job."""

    async def clear_triggers(self, job_name: str) -> int:
        """Delete all pending handles and return how many were removed."""

    async def replace_triggers(self, job_name: str, delay_seconds: float) -> TriggerHandle:
        """Atomically clear pending handles and arm exactly one new handle."""

    async def list_triggers(self, job_name: str) -> list[TriggerHandle]:
        """Return pending handles for a job."""

    async def claim_due_triggers(self, job_name: str, *, limit: int) -> list[TriggerHandle]:
        """Remove and return handles whose fire time has passed."""


@runtime_checkable
class RunLogRepository(Protocol):
    """Append-only operator-facing run log."""

    async def append_log_record(self, job_name: str, record: LogRecord) -> None:
        """Append one record."""

    async def list_log_records(self, job_name: str, *, limit: int = 100) -> list[LogRecord]:
        """Return the most recent records in append order."""


class ArtifactDestination(Protocol):
    """Destination container lookup and artifact storage."""

    async def get_container(self, container_id: str) -> ContainerRef | None:
        """Return the container behind a stored handle, or `None` when stale."""

    async def find_container(self, name: str) -> ContainerRef | None:
        """Look a container up by its human-readable name."""

    async def create_container(self, name: str) -> ContainerRef:
        """Create a container with the given name."""

    async def artifact_exists(self, container: ContainerRef, name: str) -> bool:
        """Return whether an artifact with this name is already stored."""

    async def store_artifact(
        self,
        container: ContainerRef,
        name: str,
        content: bytes,
        content_type: str,
    ) -> ArtifactRef:
        """Store artifact bytes under `name`."""


class ReportRenderer(Protocol):
    """External collaborator producing one binary artifact per item."""

    async def render(self, item: WorkItem, layout: RenderLayout) -> bytes:
        """Render the report for `item`."""


class BatchEventPublisher(Protocol):
    """Outbound publisher for chunk progress events."""

    async def publish_chunk(self, report: ChunkReport) -> None:
        """Publish the summary of one executor invocation."""


__all__ = [
    "ArtifactDestination",
    "BatchEventPublisher",
    "CheckpointStore",
    "ReportRenderer",
    "RunLogRepository",
    "TriggerRepository",
]
