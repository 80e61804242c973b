"""In-memory artifact destination for local runs and tests."""

from __future__ import annotations

import asyncio
from uuid import uuid4

from batch_report_runner.domain.errors import ResourceResolutionError
from batch_report_runner.domain.models import ArtifactRef, ContainerRef
from batch_report_runner.domain.ports import ArtifactDestination


class InMemoryArtifactDestination(ArtifactDestination):
    """Named containers of artifacts held in process memory."""

    def __init__(self) -> None:
        self._containers: dict[str, str] = {}
        self._artifacts: dict[str, dict[str, bytes]] = {}
        self._lock = asyncio.Lock()

    async def get_container(self, container_id: str) -> ContainerRef | None:
        name = self._containers.get(container_id)
        if name is None:
            return None
        return ContainerRef(container_id=container_id, name=name)

    async def find_container(self, name: str) -> ContainerRef | None:
        for container_id, container_name in self._containers.items():
            if container_name == name:
                return ContainerRef(container_id=container_id, name=name)
        return None

    async def create_container(self, name: str) -> ContainerRef:
        async with self._lock:
            container_id = f"container-{uuid4()}"
            self._containers[container_id] = name
            self._artifacts[container_id] = {}
        return ContainerRef(container_id=container_id, name=name)

    async def artifact_exists(self, container: ContainerRef, name: str) -> bool:
        return name in self._container_artifacts(container)

    async def store_artifact(
        self,
        container: ContainerRef,
        name: str,
        content: bytes,
        content_type: str,
    ) -> ArtifactRef:
        _ = content_type
        async with self._lock:
            self._container_artifacts(container)[name] = content
        return ArtifactRef(uri=f"memory://{container.container_id}/{name}")

    def remove_container(self, container_id: str) -> None:
        """Drop a container and its artifacts, leaving stored handles stale."""

        self._containers.pop(container_id, None)
        self._artifacts.pop(container_id, None)

    def artifact_names(self, container_id: str) -> list[str]:
        return sorted(self._artifacts.get(container_id, {}))

    def _container_artifacts(self, container: ContainerRef) -> dict[str, bytes]:
        artifacts = self._artifacts.get(container.container_id)
        if artifacts is None:
            raise ResourceResolutionError(
                f"Destination container '{container.container_id}' no longer exists."
            )
        return artifacts


__all__ = ["InMemoryArtifactDestination"]
