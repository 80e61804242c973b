"""Application bootstrap/wiring."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from batch_report_runner.application.services import (
    BatchExecutor,
    DestinationResolver,
    ItemProcessor,
    JobController,
    TriggerManager,
)
from batch_report_runner.config import DestinationBackend, RepositoryBackend, Settings
from batch_report_runner.domain.ports import (
    ArtifactDestination,
    BatchEventPublisher,
    CheckpointStore,
    ReportRenderer,
    RunLogRepository,
    TriggerRepository,
)
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

logger = logging.getLogger(__name__)


class BatchJobRepository(CheckpointStore, TriggerRepository, RunLogRepository, Protocol):
    """Combined persistence port implemented by both repository backends."""


@runtime_checkable
class _ClosableRepository(Protocol):
    async def close(self) -> None:
        """Release pooled resources."""


@dataclass(slots=True)
class BatchRuntime:
    """Composed service graph for one job."""

    settings: Settings
    repository: BatchJobRepository
    destination: ArtifactDestination
    trigger_manager: TriggerManager
    job_controller: JobController
    batch_executor: BatchExecutor
    dispatcher: ContinuationDispatcher

    async def startup(self) -> None:
        """Re-arm a stalled run, then start the continuation dispatcher."""

        await self.batch_executor.resume_stalled_run()
        await self.dispatcher.start()

    async def shutdown(self) -> None:
        """Stop background work and release storage resources."""

        await self.dispatcher.stop()
        if isinstance(self.repository, _ClosableRepository):
            await self.repository.close()


def _build_repository(settings: Settings) -> BatchJobRepository:
    if settings.repository_backend == RepositoryBackend.POSTGRES:
        if settings.postgres_dsn is None:
            raise ValueError(
                "BRR_POSTGRES_DSN is required when BRR_REPOSITORY_BACKEND=postgres."
            )
        return PostgresBatchJobRepository(
            dsn=settings.postgres_dsn,
            min_pool_size=settings.postgres_pool_min_size,
            max_pool_size=settings.postgres_pool_max_size,
        )
    return InMemoryBatchJobRepository()


def _build_destination(settings: Settings) -> ArtifactDestination:
    if settings.destination_backend == DestinationBackend.S3:
        return S3ArtifactDestination(
            region=settings.aws_region,
            endpoint_url=settings.s3_endpoint_url,
        )
    return InMemoryArtifactDestination()


def _build_event_publisher(settings: Settings) -> BatchEventPublisher:
    if settings.events_mqtt_enabled:
        if settings.events_mqtt_host is None:
            raise ValueError(
                "BRR_EVENTS_MQTT_HOST is required when BRR_EVENTS_MQTT_ENABLED=true."
            )
        return MqttBatchEventPublisher(
            broker_host=settings.events_mqtt_host,
            broker_port=settings.events_mqtt_port,
            topic_prefix=settings.events_mqtt_topic_prefix,
            qos=settings.events_mqtt_qos,
            username=settings.events_mqtt_username,
            password=settings.events_mqtt_password,
            client_id=f"batch-report-runner-{settings.job_name}",
        )
    return NoopBatchEventPublisher()


def build_batch_runtime(
    settings: Settings,
    *,
    renderer: ReportRenderer | None = None,
    destination: ArtifactDestination | None = None,
) -> BatchRuntime:
    """Compose service graph."""

    repository = _build_repository(settings)
    resolved_destination = destination or _build_destination(settings)
    resolved_renderer = renderer or HttpReportRenderer(
        endpoint=settings.renderer_endpoint,
        timeout_seconds=settings.renderer_timeout_seconds,
        access_token=settings.renderer_access_token,
    )
    delays = settings.continuation_delays
    run_lock = asyncio.Lock()

    trigger_manager = TriggerManager(settings.job_name, repository)
    destination_resolver = DestinationResolver(
        resolved_destination,
        settings.destination_name,
    )
    job_controller = JobController(
        job_name=settings.job_name,
        checkpoint_store=repository,
        trigger_manager=trigger_manager,
        destination_resolver=destination_resolver,
        delays=delays,
        run_lock=run_lock,
    )
    batch_executor = BatchExecutor(
        job_name=settings.job_name,
        checkpoint_store=repository,
        run_log=repository,
        trigger_manager=trigger_manager,
        destination_resolver=destination_resolver,
        item_processor=ItemProcessor(
            destination=resolved_destination,
            renderer=resolved_renderer,
            layout=settings.render_layout,
            pacing_seconds=settings.item_pacing_seconds,
        ),
        event_publisher=_build_event_publisher(settings),
        chunk_size=settings.chunk_size,
        time_budget_seconds=settings.time_budget_seconds,
        delays=delays,
        run_lock=run_lock,
    )
    dispatcher = ContinuationDispatcher(
        job_name=settings.job_name,
        trigger_repository=repository,
        run_chunk=batch_executor.run_chunk,
        poll_interval_seconds=settings.continuation_poll_seconds,
    )
    logger.info(
        "Configured job '%s' with %s repository and %s destination.",
        settings.job_name,
        settings.repository_backend.value,
        settings.destination_backend.value,
    )
    return BatchRuntime(
        settings=settings,
        repository=repository,
        destination=resolved_destination,
        trigger_manager=trigger_manager,
        job_controller=job_controller,
        batch_executor=batch_executor,
        dispatcher=dispatcher,
    )


__all__ = ["BatchJobRepository", "BatchRuntime", "build_batch_runtime"]
