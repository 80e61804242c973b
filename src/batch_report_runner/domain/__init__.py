"""Domain public API."""

from batch_report_runner.domain.errors import (
    BatchJobError,
    CheckpointStoreError,
    ConfigurationError,
    ItemProcessingError,
    ReportRenderError,
    ResourceResolutionError,
    RunSupersededError,
)
from batch_report_runner.domain.job_models import (
    ChunkReportResponse,
    JobStatusResponse,
    LogListResponse,
    LogRecordResponse,
    SampleJobRequest,
    SourceRow,
    StartJobRequest,
    TriggerResponse,
)
from batch_report_runner.domain.models import (
    ArtifactRef,
    Checkpoint,
    ChunkOutcome,
    ChunkReport,
    ChunkStatus,
    ContainerRef,
    ContinuationDecision,
    ContinuationDelays,
    ContinuationKind,
    ItemResult,
    LogRecord,
    LogStatus,
    RenderLayout,
    TriggerHandle,
    WorkItem,
)
from batch_report_runner.domain.ports import (
    ArtifactDestination,
    BatchEventPublisher,
    CheckpointStore,
    ReportRenderer,
    RunLogRepository,
    TriggerRepository,
)

__all__ = [
    "ArtifactDestination",
    "ArtifactRef",
    "BatchEventPublisher",
    "BatchJobError",
    "Checkpoint",
    "CheckpointStore",
    "CheckpointStoreError",
    "ChunkOutcome",
    "ChunkReport",
    "ChunkReportResponse",
    "ChunkStatus",
    "ConfigurationError",
    "ContainerRef",
    "ContinuationDecision",
    "ContinuationDelays",
    "ContinuationKind",
    "ItemProcessingError",
    "ItemResult",
    "JobStatusResponse",
    "LogListResponse",
    "LogRecord",
    "LogRecordResponse",
    "LogStatus",
    "RenderLayout",
    "ReportRenderError",
    "ReportRenderer",
    "ResourceResolutionError",
    "RunLogRepository",
    "RunSupersededError",
    "SampleJobRequest",
    "SourceRow",
    "StartJobRequest",
    "TriggerHandle",
    "TriggerRepository",
    "TriggerResponse",
    "WorkItem",
]
