"""MQTT chunk progress publisher."""

from __future__ import annotations

import asyncio
import json
import time
from datetime import UTC, datetime
from typing import Any

from batch_report_runner.domain.models import ChunkReport
from batch_report_runner.domain.ports import BatchEventPublisher


class MqttBatchEventPublisher(BatchEventPublisher):
    """Publish chunk summaries to `{topic_prefix}/{job_name}/progress`."""

    def __init__(
        self,
        broker_host: str,
        broker_port: int = 1883,
        topic_prefix: str = "batch-report-runner",
        qos: int = 0,
        username: str | None = None,
        password: str | None = None,
        client_id: str = "batch-report-runner",
        client: Any | None = None,
    ) -> None:
        if not broker_host.strip():
            raise ValueError("broker_host cannot be empty.")
        if qos not in {0, 1, 2}:
            raise ValueError("qos must be one of 0, 1, 2.")

        self._topic_prefix = topic_prefix.strip().strip("/")
        self._qos = qos

        if client is None:
            client = self._build_client(client_id)
            if username is not None:
                client.username_pw_set(username=username, password=password)
            self._connect_with_retry(
                client=client,
                broker_host=broker_host,
                broker_port=broker_port,
            )
            client.loop_start()
        self._client = client

    async def publish_chunk(self, report: ChunkReport) -> None:
        topic = f"{self._topic_prefix}/{report.job_name}/progress"
        await self._publish(topic, self.chunk_payload(report))

    def chunk_payload(self, report: ChunkReport) -> dict[str, object]:
        percent = None
        if report.total > 0:
            percent = round(report.cursor_after / report.total * 100, 2)
        return {
            "eventType": "chunk",
            "timestamp": self._timestamp(),
            "jobName": report.job_name,
            "runId": report.run_id,
            "status": report.status.value,
            "cursorBefore": report.cursor_before,
            "cursorAfter": report.cursor_after,
            "total": report.total,
            "percentComplete": percent,
            "processed": report.processed,
            "statusCounts": dict(report.status_counts),
            "error": report.error,
        }

    async def _publish(self, topic: str, payload: dict[str, object]) -> None:
        message = json.dumps(payload, separators=(",", ":"))
        await asyncio.to_thread(self._client.publish, topic, message, self._qos)

    def _timestamp(self) -> str:
        return datetime.now(tz=UTC).isoformat()

    def _build_client(self, client_id: str) -> Any:
        try:
            import paho.mqtt.client as mqtt  # type: ignore[import-untyped]
        except ModuleNotFoundError as exc:
            raise RuntimeError(
                "paho-mqtt is required for MQTT chunk events. "
                "Install project dependencies first."
            ) from exc

        try:
            return mqtt.Client(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
                client_id=client_id,
            )
        except (AttributeError, TypeError):
            return mqtt.Client(client_id=client_id)

    def _connect_with_retry(
        self,
        client: Any,
        broker_host: str,
        broker_port: int,
        max_attempts: int = 20,
    ) -> None:
        """Connect to MQTT broker with bounded retry/backoff."""

        delay_seconds = 0.5
        last_error: Exception | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                client.connect(host=broker_host, port=broker_port, keepalive=60)
                return
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                if attempt == max_attempts:
                    break
                time.sleep(delay_seconds)
                delay_seconds = min(3.0, delay_seconds * 1.5)

        raise RuntimeError(
            f"Failed to connect to MQTT broker {broker_host}:{broker_port} "
            f"after {max_attempts} attempts."
        ) from last_error


__all__ = ["MqttBatchEventPublisher"]
