"""Batch job domain models."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


@dataclass(slots=True, frozen=True)
class WorkItem:
    """One entry of a worklist; identity is `item_id`."""

    item_id: str
    group_key: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.item_id, "groupKey": self.group_key}

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> WorkItem:
        return cls(item_id=str(payload["id"]), group_key=str(payload["groupKey"]))


@dataclass(slots=True, frozen=True)
class ContainerRef:
    """Resolved destination container holding produced artifacts."""

    container_id: str
    name: str


@dataclass(slots=True, frozen=True)
class ArtifactRef:
    """Reference to one stored artifact."""

    uri: str


@dataclass(slots=True, frozen=True)
class Checkpoint:
    """Persisted progress marker for one job run.

    `cursor` is the index of the next item to process. A run is complete once
    `cursor >= total`; it is finalized once its `Complete` record was written.
    """

    job_name: str
    run_id: str
    worklist: tuple[WorkItem, ...]
    cursor: int
    total: int
    destination_ref: str | None = None
    finalized: bool = False

    def __post_init__(self) -> None:
        if self.total != len(self.worklist):
            raise ValueError("Checkpoint total must equal the worklist length.")
        if not 0 <= self.cursor <= self.total:
            raise ValueError(
                f"Checkpoint cursor {self.cursor} is outside [0, {self.total}]."
            )
        if self.finalized and self.cursor < self.total:
            raise ValueError("Only a completed checkpoint can be finalized.")

    @property
    def completed(self) -> bool:
        return self.cursor >= self.total

    def advanced_to(self, cursor: int) -> Checkpoint:
        """Return a copy moved forward to `cursor`; never moves backwards."""

        return replace(self, cursor=max(self.cursor, min(cursor, self.total)))

    def with_destination(self, destination_ref: str) -> Checkpoint:
        return replace(self, destination_ref=destination_ref)

    def as_finalized(self) -> Checkpoint:
        return replace(self, finalized=True)

    def worklist_payload(self) -> list[dict[str, str]]:
        return [item.to_dict() for item in self.worklist]


@dataclass(slots=True, frozen=True)
class TriggerHandle:
    """A pending future invocation of the batch executor."""

    trigger_id: str
    job_name: str
    fire_at: datetime


class LogStatus(StrEnum):
    """Outcome recorded in the operator-facing run log."""

    SUCCESS = "Success"
    SKIPPED = "Skipped"
    ERROR = "Error"
    COMPLETE = "Complete"


@dataclass(slots=True, frozen=True)
class LogRecord:
    """Append-only run log row."""

    timestamp: datetime
    item_id: str
    group_key: str
    status: LogStatus
    message: str = ""
    artifact_ref: str = ""

    @classmethod
    def for_item(
        cls,
        item: WorkItem,
        status: LogStatus,
        message: str = "",
        artifact_ref: str = "",
    ) -> LogRecord:
        return cls(
            timestamp=datetime.now(tz=UTC),
            item_id=item.item_id,
            group_key=item.group_key,
            status=status,
            message=message,
            artifact_ref=artifact_ref,
        )

    @classmethod
    def complete(cls, total: int) -> LogRecord:
        return cls(
            timestamp=datetime.now(tz=UTC),
            item_id="",
            group_key="",
            status=LogStatus.COMPLETE,
            message=f"Processed {total} item(s).",
        )


@dataclass(slots=True, frozen=True)
class ItemResult:
    """Outcome of one item before it is turned into a log record."""

    status: LogStatus
    artifact: ArtifactRef | None = None
    failure: str | None = None

    @classmethod
    def produced(cls, artifact: ArtifactRef) -> ItemResult:
        return cls(status=LogStatus.SUCCESS, artifact=artifact)

    @classmethod
    def skipped(cls) -> ItemResult:
        return cls(status=LogStatus.SKIPPED)

    @classmethod
    def failed(cls, failure: str) -> ItemResult:
        return cls(status=LogStatus.ERROR, failure=failure)

    def to_log_record(self, item: WorkItem, artifact_name: str | None) -> LogRecord:
        if self.status is LogStatus.SUCCESS:
            assert self.artifact is not None
            return LogRecord.for_item(
                item,
                LogStatus.SUCCESS,
                message=f"Stored {artifact_name}",
                artifact_ref=self.artifact.uri,
            )
        if self.status is LogStatus.SKIPPED:
            return LogRecord.for_item(
                item,
                LogStatus.SKIPPED,
                message=f"{artifact_name} already exists",
            )
        return LogRecord.for_item(item, LogStatus.ERROR, message=self.failure or "")


class ContinuationKind(StrEnum):
    """What the executor does after a chunk."""

    ARM_AFTER = "ARM_AFTER"
    FINALIZE = "FINALIZE"


@dataclass(slots=True, frozen=True)
class ContinuationDecision:
    """Either arm one continuation after `delay_seconds`, or finalize the run."""

    kind: ContinuationKind
    delay_seconds: float | None = None

    @classmethod
    def arm_after(cls, delay_seconds: float) -> ContinuationDecision:
        return cls(kind=ContinuationKind.ARM_AFTER, delay_seconds=delay_seconds)

    @classmethod
    def finalize(cls) -> ContinuationDecision:
        return cls(kind=ContinuationKind.FINALIZE)


@dataclass(slots=True, frozen=True)
class ContinuationDelays:
    """Three delay tiers used when arming continuations."""

    kickoff_seconds: float
    cooldown_seconds: float
    interrupted_seconds: float


@dataclass(slots=True, frozen=True)
class ChunkOutcome:
    """Result of advancing a checkpoint through one chunk."""

    checkpoint: Checkpoint
    decision: ContinuationDecision
    records: tuple[LogRecord, ...] = ()
    interrupted: bool = False

    @property
    def processed(self) -> int:
        return len(self.records)


class ChunkStatus(StrEnum):
    """What one executor invocation did."""

    NO_CHECKPOINT = "NO_CHECKPOINT"
    CONTINUED = "CONTINUED"
    INTERRUPTED = "INTERRUPTED"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"
    SUPERSEDED = "SUPERSEDED"


@dataclass(slots=True, frozen=True)
class ChunkReport:
    """Summary of one executor invocation."""

    job_name: str
    status: ChunkStatus
    run_id: str | None = None
    cursor_before: int = 0
    cursor_after: int = 0
    total: int = 0
    processed: int = 0
    status_counts: dict[str, int] = field(default_factory=dict)
    error: str | None = None


@dataclass(slots=True, frozen=True)
class RenderLayout:
    """Layout parameters handed to the report renderer."""

    page_size: str = "A4"
    portrait: bool = True
    top_margin: float = 0.5
    bottom_margin: float = 0.5
    left_margin: float = 0.5
    right_margin: float = 0.5
    fit_width: bool = True
    fit_height: bool = False
    content_range: str | None = None
    sheet_id: str | None = None


__all__ = [
    "ArtifactRef",
    "Checkpoint",
    "ChunkOutcome",
    "ChunkReport",
    "ChunkStatus",
    "ContainerRef",
    "ContinuationDecision",
    "ContinuationDelays",
    "ContinuationKind",
    "ItemResult",
    "LogRecord",
    "LogStatus",
    "RenderLayout",
    "TriggerHandle",
    "WorkItem",
]
