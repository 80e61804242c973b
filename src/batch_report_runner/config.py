"""Application settings."""

from enum import StrEnum

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from batch_report_runner.domain.models import ContinuationDelays, RenderLayout


class RepositoryBackend(StrEnum):
    """Available persistence adapters for checkpoints, triggers, and the run log."""

    IN_MEMORY = "in_memory"
    POSTGRES = "postgres"


class DestinationBackend(StrEnum):
    """Available artifact destination adapters."""

    IN_MEMORY = "in_memory"
    S3 = "s3"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "Batch Report Runner"
    api_prefix: str = ""
    host: str = "0.0.0.0"
    port: int = 8080
    job_name: str = "report-export"
    repository_backend: RepositoryBackend = RepositoryBackend.IN_MEMORY
    postgres_dsn: str | None = None
    postgres_pool_min_size: int = 1
    postgres_pool_max_size: int = 10
    chunk_size: int = 15
    time_budget_seconds: float = 270.0
    kickoff_delay_seconds: float = 2.0
    cooldown_delay_seconds: float = 60.0
    interrupted_delay_seconds: float = 300.0
    item_pacing_seconds: float = 1.0
    continuation_poll_seconds: float = 1.0
    destination_backend: DestinationBackend = DestinationBackend.IN_MEMORY
    destination_name: str = "Generated Reports"
    aws_region: str = "us-east-1"
    s3_endpoint_url: str | None = None
    renderer_endpoint: str = "http://localhost:8081/export"
    renderer_timeout_seconds: float = 60.0
    renderer_access_token: str | None = None
    layout_page_size: str = "A4"
    layout_portrait: bool = True
    layout_fit_width: bool = True
    layout_fit_height: bool = False
    layout_top_margin: float = 0.5
    layout_bottom_margin: float = 0.5
    layout_left_margin: float = 0.5
    layout_right_margin: float = 0.5
    layout_content_range: str | None = None
    layout_sheet_id: str | None = None
    events_mqtt_enabled: bool = False
    events_mqtt_host: str | None = None
    events_mqtt_port: int = 1883
    events_mqtt_username: str | None = None
    events_mqtt_password: str | None = None
    events_mqtt_topic_prefix: str = "batch-report-runner"
    events_mqtt_qos: int = 0

    @model_validator(mode="after")
    def validate_runtime_settings(self) -> "Settings":
        """Ensure backend-specific and scheduling settings are valid."""

        if self.repository_backend == RepositoryBackend.POSTGRES and not self.postgres_dsn:
            raise ValueError(
                "BRR_POSTGRES_DSN is required when BRR_REPOSITORY_BACKEND=postgres."
            )
        if self.postgres_pool_min_size < 1:
            raise ValueError("BRR_POSTGRES_POOL_MIN_SIZE must be >= 1.")
        if self.postgres_pool_max_size < self.postgres_pool_min_size:
            raise ValueError(
                "BRR_POSTGRES_POOL_MAX_SIZE must be >= BRR_POSTGRES_POOL_MIN_SIZE."
            )
        if not self.job_name.strip():
            raise ValueError("BRR_JOB_NAME cannot be empty.")
        if not self.destination_name.strip():
            raise ValueError("BRR_DESTINATION_NAME cannot be empty.")
        if self.chunk_size < 1:
            raise ValueError("BRR_CHUNK_SIZE must be >= 1.")
        if self.time_budget_seconds <= 0:
            raise ValueError("BRR_TIME_BUDGET_SECONDS must be > 0.")
        if self.kickoff_delay_seconds <= 0:
            raise ValueError("BRR_KICKOFF_DELAY_SECONDS must be > 0.")
        if self.cooldown_delay_seconds <= self.kickoff_delay_seconds:
            raise ValueError(
                "BRR_COOLDOWN_DELAY_SECONDS must be > BRR_KICKOFF_DELAY_SECONDS."
            )
        if self.interrupted_delay_seconds <= self.cooldown_delay_seconds:
            raise ValueError(
                "BRR_INTERRUPTED_DELAY_SECONDS must be > BRR_COOLDOWN_DELAY_SECONDS."
            )
        if self.item_pacing_seconds < 0:
            raise ValueError("BRR_ITEM_PACING_SECONDS must be >= 0.")
        if self.continuation_poll_seconds <= 0:
            raise ValueError("BRR_CONTINUATION_POLL_SECONDS must be > 0.")
        if self.renderer_timeout_seconds <= 0:
            raise ValueError("BRR_RENDERER_TIMEOUT_SECONDS must be > 0.")
        if self.events_mqtt_enabled and not self.events_mqtt_host:
            raise ValueError(
                "BRR_EVENTS_MQTT_HOST is required when BRR_EVENTS_MQTT_ENABLED=true."
            )
        if self.events_mqtt_port < 1:
            raise ValueError("BRR_EVENTS_MQTT_PORT must be >= 1.")
        if self.events_mqtt_qos not in {0, 1, 2}:
            raise ValueError("BRR_EVENTS_MQTT_QOS must be one of 0, 1, 2.")
        return self

    @property
    def continuation_delays(self) -> ContinuationDelays:
        return ContinuationDelays(
            kickoff_seconds=self.kickoff_delay_seconds,
            cooldown_seconds=self.cooldown_delay_seconds,
            interrupted_seconds=self.interrupted_delay_seconds,
        )

    @property
    def render_layout(self) -> RenderLayout:
        return RenderLayout(
            page_size=self.layout_page_size,
            portrait=self.layout_portrait,
            top_margin=self.layout_top_margin,
            bottom_margin=self.layout_bottom_margin,
            left_margin=self.layout_left_margin,
            right_margin=self.layout_right_margin,
            fit_width=self.layout_fit_width,
            fit_height=self.layout_fit_height,
            content_range=self.layout_content_range,
            sheet_id=self.layout_sheet_id,
        )

    model_config = SettingsConfigDict(env_prefix="BRR_", extra="ignore")


__all__ = ["DestinationBackend", "RepositoryBackend", "Settings"]
