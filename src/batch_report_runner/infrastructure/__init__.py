"""Infrastructure layer public API."""

from batch_report_runner.infrastructure.continuations import ContinuationDispatcher
from batch_report_runner.infrastructure.destinations import (
    InMemoryArtifactDestination,
    S3ArtifactDestination,
)
from batch_report_runner.infrastructure.events import (
    MqttBatchEventPublisher,
    NoopBatchEventPublisher,
)
from batch_report_runner.infrastructure.rendering import HttpReportRenderer
from batch_report_runner.infrastructure.repositories import (
    InMemoryBatchJobRepository,
    PostgresBatchJobRepository,
)

__all__ = [
    "ContinuationDispatcher",
    "HttpReportRenderer",
    "InMemoryArtifactDestination",
    "InMemoryBatchJobRepository",
    "MqttBatchEventPublisher",
    "NoopBatchEventPublisher",
    "PostgresBatchJobRepository",
    "S3ArtifactDestination",
]
