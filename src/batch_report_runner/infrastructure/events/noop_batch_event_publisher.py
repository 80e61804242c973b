"""No-op chunk event publisher."""

from batch_report_runner.domain.models import ChunkReport
from batch_report_runner.domain.ports import BatchEventPublisher


class NoopBatchEventPublisher(BatchEventPublisher):
    """Publisher used when no event broker is configured."""

    async def publish_chunk(self, report: ChunkReport) -> None:
        _ = report


__all__ = ["NoopBatchEventPublisher"]
