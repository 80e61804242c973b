"""Repository implementations."""

from batch_report_runner.infrastructure.repositories.in_memory_batch_job_repository import (
    InMemoryBatchJobRepository,
)
from batch_report_runner.infrastructure.repositories.postgres_batch_job_repository import (
    PostgresBatchJobRepository,
)

__all__ = ["InMemoryBatchJobRepository", "PostgresBatchJobRepository"]
