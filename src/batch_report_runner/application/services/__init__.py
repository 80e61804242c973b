"""Application services public API."""

from batch_report_runner.application.services.batch_executor import (
    BatchExecutor,
    advance_chunk,
)
from batch_report_runner.application.services.destination_resolver import DestinationResolver
from batch_report_runner.application.services.item_processor import (
    ItemProcessor,
    build_artifact_name,
)
from batch_report_runner.application.services.job_controller import JobController
from batch_report_runner.application.services.trigger_manager import TriggerManager
from batch_report_runner.application.services.worklist import (
    build_worklist,
    sample_work_items,
)

__all__ = [
    "BatchExecutor",
    "DestinationResolver",
    "ItemProcessor",
    "JobController",
    "TriggerManager",
    "advance_chunk",
    "build_artifact_name",
    "build_worklist",
    "sample_work_items",
]
