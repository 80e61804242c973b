"""Pydantic models for the job management routes."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from batch_report_runner.domain.models import (
    Checkpoint,
    ChunkReport,
    ChunkStatus,
    LogRecord,
    LogStatus,
    TriggerHandle,
)


class JobModel(BaseModel):
    """Base model for job management payloads."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class SourceRow(JobModel):
    """One raw source row; blank ids or group keys are dropped before the run."""

    id: str | None = None
    group_key: str | None = Field(default=None, alias="groupKey")


class StartJobRequest(JobModel):
    """Full run request."""

    rows: list[SourceRow] | None = None


class SampleJobRequest(StartJobRequest):
    """Sample (dry) run request."""

    sample_size: int = Field(alias="sampleSize", ge=1)
    seed: int | None = None


class TriggerResponse(JobModel):
    """Pending continuation."""

    trigger_id: str = Field(alias="triggerId")
    fire_at: datetime = Field(alias="fireAt")

    @classmethod
    def from_handle(cls, handle: TriggerHandle) -> TriggerResponse:
        return cls(trigger_id=handle.trigger_id, fire_at=handle.fire_at)


class JobStatusResponse(JobModel):
    """Checkpoint progress plus pending continuation."""

    job_name: str = Field(alias="jobName")
    run_id: str = Field(alias="runId")
    cursor: int
    total: int
    percent_complete: float | None = Field(default=None, alias="percentComplete")
    completed: bool
    destination_ref: str | None = Field(default=None, alias="destinationRef")
    pending_triggers: list[TriggerResponse] = Field(
        default_factory=list, alias="pendingTriggers"
    )

    @classmethod
    def from_checkpoint(
        cls,
        checkpoint: Checkpoint,
        triggers: list[TriggerHandle],
    ) -> JobStatusResponse:
        percent = None
        if checkpoint.total > 0:
            percent = round(checkpoint.cursor / checkpoint.total * 100, 2)
        return cls(
            job_name=checkpoint.job_name,
            run_id=checkpoint.run_id,
            cursor=checkpoint.cursor,
            total=checkpoint.total,
            percent_complete=percent,
            completed=checkpoint.completed,
            destination_ref=checkpoint.destination_ref,
            pending_triggers=[TriggerResponse.from_handle(handle) for handle in triggers],
        )


class ChunkReportResponse(JobModel):
    """Result of a forced chunk execution."""

    job_name: str = Field(alias="jobName")
    status: ChunkStatus
    run_id: str | None = Field(default=None, alias="runId")
    cursor_before: int = Field(alias="cursorBefore")
    cursor_after: int = Field(alias="cursorAfter")
    total: int
    processed: int
    status_counts: dict[str, int] = Field(default_factory=dict, alias="statusCounts")
    error: str | None = None

    @classmethod
    def from_report(cls, report: ChunkReport) -> ChunkReportResponse:
        return cls(
            job_name=report.job_name,
            status=report.status,
            run_id=report.run_id,
            cursor_before=report.cursor_before,
            cursor_after=report.cursor_after,
            total=report.total,
            processed=report.processed,
            status_counts=dict(report.status_counts),
            error=report.error,
        )


class LogRecordResponse(JobModel):
    """One run log row."""

    timestamp: datetime
    item_id: str = Field(alias="itemId")
    group_key: str = Field(alias="groupKey")
    status: LogStatus
    message: str
    artifact_ref: str = Field(alias="artifactRef")

    @classmethod
    def from_record(cls, record: LogRecord) -> LogRecordResponse:
        return cls(
            timestamp=record.timestamp,
            item_id=record.item_id,
            group_key=record.group_key,
            status=record.status,
            message=record.message,
            artifact_ref=record.artifact_ref,
        )


class LogListResponse(JobModel):
    """Collection wrapper for the run log route."""

    job_name: str = Field(alias="jobName")
    records: list[LogRecordResponse]


__all__ = [
    "ChunkReportResponse",
    "JobStatusResponse",
    "LogListResponse",
    "LogRecordResponse",
    "SampleJobRequest",
    "SourceRow",
    "StartJobRequest",
    "TriggerResponse",
]
