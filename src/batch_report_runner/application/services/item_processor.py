"""Per-item artifact production with an idempotency guard."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from collections.abc import Awaitable, Callable

from batch_report_runner.domain.errors import ResourceResolutionError
from batch_report_runner.domain.models import (
    ContainerRef,
    ItemResult,
    LogRecord,
    RenderLayout,
    WorkItem,
)
from batch_report_runner.domain.ports import ArtifactDestination, ReportRenderer

_PDF_CONTENT_TYPE = "application/pdf"
_MAX_FAILURE_MESSAGE_LENGTH = 2000
_NON_NAME_CHARS = re.compile(r"[^A-Za-z0-9]+")

Sleeper = Callable[[float], Awaitable[None]]

logger = logging.getLogger(__name__)


def _slug(value: str, fallback: str) -> str:
    slug = _NON_NAME_CHARS.sub("-", value).strip("-").lower()
    return slug or fallback


def build_artifact_name(item: WorkItem, extension: str = "pdf") -> str:
    """Return the deterministic artifact name for an item.

    The digest suffix keeps names unique when different ids or group keys
    collapse to the same slug.
    """

    digest = hashlib.sha256(f"{item.item_id}\x1f{item.group_key}".encode()).hexdigest()[:8]
    return (
        f"{_slug(item.item_id, 'item')}_{_slug(item.group_key, 'group')}_{digest}.{extension}"
    )


class ItemProcessor:
    """Produce one artifact per item; item failures become `Error` records."""

    def __init__(
        self,
        destination: ArtifactDestination,
        renderer: ReportRenderer,
        layout: RenderLayout | None = None,
        pacing_seconds: float = 0.0,
        sleep: Sleeper = asyncio.sleep,
        content_type: str = _PDF_CONTENT_TYPE,
    ) -> None:
        self._destination = destination
        self._renderer = renderer
        self._layout = layout or RenderLayout()
        self._pacing_seconds = max(pacing_seconds, 0.0)
        self._sleep = sleep
        self._content_type = content_type

    async def process(self, item: WorkItem, container: ContainerRef) -> LogRecord:
        """Process one item.

        Only `ResourceResolutionError` escapes: it means the container itself is
        gone and the whole chunk must stop.
        """

        artifact_name: str | None = None
        try:
            artifact_name = build_artifact_name(item)
            result = await self._produce(item, container, artifact_name)
        except ResourceResolutionError:
            raise
        except Exception as exc:  # noqa: BLE001
            message = str(exc).strip() or type(exc).__name__
            logger.warning("Item '%s' failed: %s", item.item_id, message)
            result = ItemResult.failed(message[:_MAX_FAILURE_MESSAGE_LENGTH])
        return result.to_log_record(item, artifact_name)

    async def _produce(
        self,
        item: WorkItem,
        container: ContainerRef,
        artifact_name: str,
    ) -> ItemResult:
        if await self._destination.artifact_exists(container, artifact_name):
            return ItemResult.skipped()

        if self._pacing_seconds > 0:
            await self._sleep(self._pacing_seconds)
        content = await self._renderer.render(item, self._layout)
        artifact = await self._destination.store_artifact(
            container,
            artifact_name,
            content,
            self._content_type,
        )
        return ItemResult.produced(artifact)


__all__ = ["ItemProcessor", "Sleeper", "build_artifact_name"]
