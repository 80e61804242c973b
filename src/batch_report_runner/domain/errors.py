"""Domain exceptions for batch job operations."""


class BatchJobError(Exception):
    """Base class for batch job errors."""


class ConfigurationError(BatchJobError):
    """Raised when a job cannot start because required input is missing."""


class ResourceResolutionError(BatchJobError):
    """Raised when the destination container cannot be resolved or recreated."""


class CheckpointStoreError(BatchJobError):
    """Raised when checkpoint, trigger, or run-log storage fails."""


class RunSupersededError(BatchJobError):
    """Raised when a newer run replaced the checkpoint a chunk was working on."""


class ItemProcessingError(BatchJobError):
    """Raised when a single work item cannot be processed."""


class ReportRenderError(ItemProcessingError):
    """Raised when the external report renderer fails for one item."""


__all__ = [
    "BatchJobError",
    "CheckpointStoreError",
    "ConfigurationError",
    "ItemProcessingError",
    "ReportRenderError",
    "ResourceResolutionError",
    "RunSupersededError",
]
