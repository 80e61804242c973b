"""Destination container resolution with stale-handle recovery."""

from __future__ import annotations

import logging

from batch_report_runner.domain.errors import ResourceResolutionError
from batch_report_runner.domain.models import ContainerRef
from batch_report_runner.domain.ports import ArtifactDestination

logger = logging.getLogger(__name__)


class DestinationResolver:
    """Resolve the destination by stored handle, then by name, then by creation."""

    def __init__(self, destination: ArtifactDestination, destination_name: str) -> None:
        self._destination = destination
        self._destination_name = destination_name

    @property
    def destination(self) -> ArtifactDestination:
        return self._destination

    async def resolve(self, container_id: str | None = None) -> ContainerRef:
        """Return a usable container; raise `ResourceResolutionError` if none can be had."""

        if container_id:
            try:
                container = await self._destination.get_container(container_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning(
                    "Destination handle '%s' could not be read: %s. Re-resolving by name.",
                    container_id,
                    exc,
                )
                container = None
            if container is not None:
                return container
            logger.warning(
                "Destination handle '%s' is stale. Re-resolving '%s' by name.",
                container_id,
                self._destination_name,
            )

        try:
            container = await self._destination.find_container(self._destination_name)
            if container is None:
                container = await self._destination.create_container(self._destination_name)
                logger.info(
                    "Created destination '%s' (%s).",
                    container.name,
                    container.container_id,
                )
        except ResourceResolutionError:
            raise
        except Exception as exc:
            raise ResourceResolutionError(
                f"Destination '{self._destination_name}' could not be resolved: {exc}"
            ) from exc
        return container


__all__ = ["DestinationResolver"]
