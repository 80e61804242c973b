"""Artifact destination adapters."""

from batch_report_runner.infrastructure.destinations.in_memory_artifact_destination import (
    InMemoryArtifactDestination,
)
from batch_report_runner.infrastructure.destinations.s3_artifact_destination import (
    S3ArtifactDestination,
)

__all__ = ["InMemoryArtifactDestination", "S3ArtifactDestination"]
