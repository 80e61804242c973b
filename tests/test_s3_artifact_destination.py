from __future__ import annotations

import asyncio
import threading
from typing import Any

import pytest

from batch_report_runner.domain.errors import ResourceResolutionError
from batch_report_runner.domain.models import ContainerRef
from batch_report_runner.infrastructure.destinations import S3ArtifactDestination
from batch_report_runner.infrastructure.destinations.s3_artifact_destination import (
    bucket_name_for,
)


class FakeClientError(Exception):
    """Mimics botocore `ClientError` by carrying a `response` payload."""

    def __init__(self, code: str) -> None:
        super().__init__(f"An error occurred ({code})")
        self.response = {"Error": {"Code": code}}


class FakeS3Client:
    """Thread-safe fake S3 client used by artifact destination tests."""

    def __init__(self, buckets: set[str] | None = None) -> None:
        self._buckets = set(buckets or ())
        self._objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self._lock = threading.Lock()
        self.create_calls: list[dict[str, Any]] = []

    def head_bucket(self, *, Bucket: str) -> dict[str, Any]:
        with self._lock:
            if Bucket not in self._buckets:
                raise FakeClientError("404")
        return {}

    def create_bucket(self, **kwargs: Any) -> dict[str, Any]:
        with self._lock:
            self.create_calls.append(kwargs)
            self._buckets.add(kwargs["Bucket"])
        return {}

    def head_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        with self._lock:
            if Bucket not in self._buckets:
                raise FakeClientError("NoSuchBucket")
            if (Bucket, Key) not in self._objects:
                raise FakeClientError("404")
            return {"ContentLength": len(self._objects[(Bucket, Key)][0])}

    def put_object(
        self,
        *,
        Bucket: str,
        Key: str,
        Body: bytes,
        ContentType: str,
    ) -> dict[str, Any]:
        with self._lock:
            if Bucket not in self._buckets:
                raise FakeClientError("NoSuchBucket")
            self._objects[(Bucket, Key)] = (Body, ContentType)
        return {"ETag": "etag"}

    def stored(self, bucket: str, key: str) -> tuple[bytes, str] | None:
        return self._objects.get((bucket, key))

    def drop_bucket(self, bucket: str) -> None:
        with self._lock:
            self._buckets.discard(bucket)


def test_bucket_name_for_normalizes_display_name() -> None:
    assert bucket_name_for("Generated Reports") == "generated-reports"
    assert bucket_name_for("  Q3 / Finance__Exports ") == "q3-finance-exports"


def test_bucket_name_for_rejects_unusable_names() -> None:
    with pytest.raises(ResourceResolutionError):
        bucket_name_for("!!")


def test_find_then_create_container() -> None:
    client = FakeS3Client()
    destination = S3ArtifactDestination(region="eu-west-1", s3_client_factory=lambda: client)

    async def scenario() -> tuple[ContainerRef | None, ContainerRef, ContainerRef | None]:
        missing = await destination.find_container("Generated Reports")
        created = await destination.create_container("Generated Reports")
        found = await destination.get_container(created.container_id)
        return missing, created, found

    missing, created, found = asyncio.run(scenario())

    assert missing is None
    assert created.container_id == "generated-reports"
    assert found is not None
    assert client.create_calls == [
        {
            "Bucket": "generated-reports",
            "CreateBucketConfiguration": {"LocationConstraint": "eu-west-1"},
        }
    ]


def test_create_container_in_default_region_omits_location() -> None:
    client = FakeS3Client()
    destination = S3ArtifactDestination(s3_client_factory=lambda: client)

    asyncio.run(destination.create_container("Generated Reports"))

    assert client.create_calls == [{"Bucket": "generated-reports"}]


def test_store_and_detect_existing_artifact_under_prefix() -> None:
    client = FakeS3Client({"generated-reports"})
    destination = S3ArtifactDestination(
        key_prefix="/exports/",
        s3_client_factory=lambda: client,
    )
    container = ContainerRef(container_id="generated-reports", name="Generated Reports")

    async def scenario() -> tuple[bool, str, bool]:
        before = await destination.artifact_exists(container, "a.pdf")
        artifact = await destination.store_artifact(
            container, "a.pdf", b"%PDF", "application/pdf"
        )
        after = await destination.artifact_exists(container, "a.pdf")
        return before, artifact.uri, after

    before, uri, after = asyncio.run(scenario())

    assert before is False
    assert after is True
    assert uri == "s3://generated-reports/exports/a.pdf"
    assert client.stored("generated-reports", "exports/a.pdf") == (b"%PDF", "application/pdf")


def test_missing_bucket_raises_resource_resolution_error() -> None:
    client = FakeS3Client({"generated-reports"})
    destination = S3ArtifactDestination(s3_client_factory=lambda: client)
    container = ContainerRef(container_id="generated-reports", name="Generated Reports")
    client.drop_bucket("generated-reports")

    with pytest.raises(ResourceResolutionError):
        asyncio.run(destination.artifact_exists(container, "a.pdf"))
    with pytest.raises(ResourceResolutionError):
        asyncio.run(destination.store_artifact(container, "a.pdf", b"x", "application/pdf"))


def test_unexpected_client_errors_propagate() -> None:
    class DeniedClient(FakeS3Client):
        def head_bucket(self, *, Bucket: str) -> dict[str, Any]:
            raise FakeClientError("AccessDenied")

    destination = S3ArtifactDestination(s3_client_factory=DeniedClient)

    with pytest.raises(FakeClientError):
        asyncio.run(destination.get_container("generated-reports"))
