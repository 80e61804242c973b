"""S3 artifact destination: containers are buckets, artifacts are objects."""

from __future__ import annotations

import asyncio
import re
from collections.abc import Callable
from typing import Any, Protocol, cast

from batch_report_runner.domain.errors import ResourceResolutionError
from batch_report_runner.domain.models import ArtifactRef, ContainerRef
from batch_report_runner.domain.ports import ArtifactDestination

_MISSING_BUCKET_CODES = frozenset({"404", "NoSuchBucket", "NotFound"})
_MISSING_OBJECT_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
_NON_BUCKET_CHARS = re.compile(r"[^a-z0-9-]+")


class S3Client(Protocol):
    """Subset of S3 client operations used by the artifact destination."""

    def head_bucket(self, *, Bucket: str) -> dict[str, Any]:
        """Return bucket metadata."""

    def create_bucket(self, **kwargs: Any) -> dict[str, Any]:
        """Create a bucket."""

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        """Return object metadata."""

    def put_object(
        self,
        *,
        Bucket: str,
        Key: str,
        Body: bytes,
        ContentType: str,
    ) -> dict[str, Any]:
        """Upload one object."""


def bucket_name_for(name: str) -> str:
    """Map a human-readable destination name to a valid bucket name."""

    normalized = _NON_BUCKET_CHARS.sub("-", name.strip().lower()).strip("-")
    if len(normalized) < 3:
        raise ResourceResolutionError(
            f"Destination name '{name}' does not map to a valid bucket name."
        )
    return normalized[:63].rstrip("-")


class S3ArtifactDestination(ArtifactDestination):
    """Store artifacts as S3 objects under an optional key prefix."""

    def __init__(
        self,
        region: str = "us-east-1",
        endpoint_url: str | None = None,
        key_prefix: str = "",
        s3_client_factory: Callable[[], S3Client] | None = None,
    ) -> None:
        self._region = region
        self._endpoint_url = endpoint_url
        self._key_prefix = key_prefix.strip("/")
        self._s3_client_factory = s3_client_factory or self._build_default_s3_client
        self._client: S3Client | None = None

    async def get_container(self, container_id: str) -> ContainerRef | None:
        client = self._s3_client()
        try:
            await asyncio.to_thread(client.head_bucket, Bucket=container_id)
        except Exception as exc:
            if self._error_code(exc) in _MISSING_BUCKET_CODES:
                return None
            raise
        return ContainerRef(container_id=container_id, name=container_id)

    async def find_container(self, name: str) -> ContainerRef | None:
        return await self.get_container(bucket_name_for(name))

    async def create_container(self, name: str) -> ContainerRef:
        bucket = bucket_name_for(name)
        kwargs: dict[str, Any] = {"Bucket": bucket}
        if self._region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region}
        client = self._s3_client()
        await asyncio.to_thread(client.create_bucket, **kwargs)
        return ContainerRef(container_id=bucket, name=name)

    async def artifact_exists(self, container: ContainerRef, name: str) -> bool:
        client = self._s3_client()
        try:
            await asyncio.to_thread(
                client.head_object,
                Bucket=container.container_id,
                Key=self._object_key(name),
            )
        except Exception as exc:
            code = self._error_code(exc)
            if code == "NoSuchBucket":
                raise ResourceResolutionError(
                    f"Bucket '{container.container_id}' no longer exists."
                ) from exc
            if code in _MISSING_OBJECT_CODES:
                return False
            raise
        return True

    async def store_artifact(
        self,
        container: ContainerRef,
        name: str,
        content: bytes,
        content_type: str,
    ) -> ArtifactRef:
        key = self._object_key(name)
        client = self._s3_client()
        try:
            await asyncio.to_thread(
                client.put_object,
                Bucket=container.container_id,
                Key=key,
                Body=content,
                ContentType=content_type,
            )
        except Exception as exc:
            if self._error_code(exc) == "NoSuchBucket":
                raise ResourceResolutionError(
                    f"Bucket '{container.container_id}' no longer exists."
                ) from exc
            raise
        return ArtifactRef(uri=f"s3://{container.container_id}/{key}")

    def _object_key(self, name: str) -> str:
        if not self._key_prefix:
            return name
        return f"{self._key_prefix}/{name}"

    def _error_code(self, exc: Exception) -> str | None:
        """Extract the error code carried by botocore `ClientError` responses."""

        response = getattr(exc, "response", None)
        if not isinstance(response, dict):
            return None
        error = response.get("Error")
        if not isinstance(error, dict):
            return None
        code = error.get("Code")
        return None if code is None else str(code)

    def _s3_client(self) -> S3Client:
        if self._client is None:
            self._client = self._s3_client_factory()
        return self._client

    def _build_default_s3_client(self) -> S3Client:
        """Create a boto3 S3 client lazily to avoid import-time hard dependency."""

        try:
            import boto3  # type: ignore[import-not-found]
        except ModuleNotFoundError as exc:
            raise RuntimeError(
                "boto3 is required for the S3 destination. Install project dependencies first."
            ) from exc

        client = boto3.client(
            "s3",
            region_name=self._region,
            endpoint_url=self._endpoint_url,
        )
        return cast(S3Client, client)


__all__ = ["S3ArtifactDestination", "S3Client", "bucket_name_for"]
