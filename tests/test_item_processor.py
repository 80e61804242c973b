from __future__ import annotations

import asyncio

import pytest

from batch_report_runner.application.services import ItemProcessor, build_artifact_name
from batch_report_runner.domain.errors import ReportRenderError, ResourceResolutionError
from batch_report_runner.domain.models import (
    ContainerRef,
    LogStatus,
    RenderLayout,
    WorkItem,
)
from batch_report_runner.domain.ports import ReportRenderer
from batch_report_runner.infrastructure.destinations import InMemoryArtifactDestination


class RecordingRenderer(ReportRenderer):
    """Renderer double that returns fixed bytes and can fail for chosen items."""

    def __init__(self, failing_ids: set[str] | None = None) -> None:
        self.rendered: list[WorkItem] = []
        self.layouts: list[RenderLayout] = []
        self._failing_ids = failing_ids or set()

    async def render(self, item: WorkItem, layout: RenderLayout) -> bytes:
        if item.item_id in self._failing_ids:
            raise ReportRenderError(f"renderer rejected {item.item_id}")
        self.rendered.append(item)
        self.layouts.append(layout)
        return f"%PDF {item.item_id}".encode()


class RecordingSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


ITEM = WorkItem(item_id="A-17", group_key="North Region")


def _container(destination: InMemoryArtifactDestination) -> ContainerRef:
    return asyncio.run(destination.create_container("Generated Reports"))


def test_build_artifact_name_is_deterministic_and_readable() -> None:
    name = build_artifact_name(ITEM)

    assert name == build_artifact_name(WorkItem(item_id="A-17", group_key="North Region"))
    assert name.startswith("a-17_north-region_")
    assert name.endswith(".pdf")


def test_build_artifact_name_differs_when_slugs_collide() -> None:
    first = build_artifact_name(WorkItem(item_id="a b", group_key="x"))
    second = build_artifact_name(WorkItem(item_id="a-b", group_key="x"))

    assert first != second


def test_process_stores_artifact_and_returns_success_record() -> None:
    destination = InMemoryArtifactDestination()
    container = _container(destination)
    renderer = RecordingRenderer()
    layout = RenderLayout(page_size="Letter", portrait=False)
    processor = ItemProcessor(destination, renderer, layout=layout)

    record = asyncio.run(processor.process(ITEM, container))

    name = build_artifact_name(ITEM)
    assert record.status == LogStatus.SUCCESS
    assert record.item_id == "A-17"
    assert record.group_key == "North Region"
    assert record.message == f"Stored {name}"
    assert record.artifact_ref == f"memory://{container.container_id}/{name}"
    assert destination.artifact_names(container.container_id) == [name]
    assert renderer.layouts == [layout]


def test_process_skips_existing_artifact_without_rendering() -> None:
    destination = InMemoryArtifactDestination()
    container = _container(destination)
    renderer = RecordingRenderer()
    processor = ItemProcessor(destination, renderer)

    async def scenario() -> tuple[LogStatus, LogStatus, str]:
        first = await processor.process(ITEM, container)
        second = await processor.process(ITEM, container)
        return first.status, second.status, second.message

    first_status, second_status, message = asyncio.run(scenario())

    assert first_status == LogStatus.SUCCESS
    assert second_status == LogStatus.SKIPPED
    assert message == f"{build_artifact_name(ITEM)} already exists"
    assert renderer.rendered == [ITEM]
    assert len(destination.artifact_names(container.container_id)) == 1


def test_process_turns_renderer_failure_into_error_record() -> None:
    destination = InMemoryArtifactDestination()
    container = _container(destination)
    processor = ItemProcessor(destination, RecordingRenderer(failing_ids={"A-17"}))

    record = asyncio.run(processor.process(ITEM, container))

    assert record.status == LogStatus.ERROR
    assert "renderer rejected A-17" in record.message
    assert record.artifact_ref == ""
    assert destination.artifact_names(container.container_id) == []


def test_process_truncates_long_failure_messages() -> None:
    class NoisyRenderer(ReportRenderer):
        async def render(self, item: WorkItem, layout: RenderLayout) -> bytes:
            raise RuntimeError("x" * 5000)

    destination = InMemoryArtifactDestination()
    container = _container(destination)
    processor = ItemProcessor(destination, NoisyRenderer())

    record = asyncio.run(processor.process(ITEM, container))

    assert record.status == LogStatus.ERROR
    assert len(record.message) == 2000


def test_process_paces_before_rendering_only() -> None:
    destination = InMemoryArtifactDestination()
    container = _container(destination)
    sleep = RecordingSleep()
    processor = ItemProcessor(
        destination,
        RecordingRenderer(),
        pacing_seconds=1.5,
        sleep=sleep,
    )

    async def scenario() -> None:
        await processor.process(ITEM, container)
        await processor.process(ITEM, container)

    asyncio.run(scenario())

    assert sleep.calls == [1.5]


def test_process_propagates_missing_container() -> None:
    destination = InMemoryArtifactDestination()
    container = _container(destination)
    destination.remove_container(container.container_id)
    processor = ItemProcessor(destination, RecordingRenderer())

    with pytest.raises(ResourceResolutionError):
        asyncio.run(processor.process(ITEM, container))
