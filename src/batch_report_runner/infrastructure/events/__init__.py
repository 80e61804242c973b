"""Chunk event publisher implementations."""

from batch_report_runner.infrastructure.events.mqtt_batch_event_publisher import (
    MqttBatchEventPublisher,
)
from batch_report_runner.infrastructure.events.noop_batch_event_publisher import (
    NoopBatchEventPublisher,
)

__all__ = ["MqttBatchEventPublisher", "NoopBatchEventPublisher"]
