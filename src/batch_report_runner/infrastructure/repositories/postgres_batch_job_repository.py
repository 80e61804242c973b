"""PostgreSQL repository implementation for batch job state."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any
from uuid import uuid4

import asyncpg  # type: ignore[import-untyped]

from batch_report_runner.domain.errors import CheckpointStoreError
from batch_report_runner.domain.models import (
    Checkpoint,
    LogRecord,
    LogStatus,
    TriggerHandle,
    WorkItem,
)
from batch_report_runner.domain.ports import (
    CheckpointStore,
    RunLogRepository,
    TriggerRepository,
)


class PostgresBatchJobRepository(
    CheckpointStore,
    TriggerRepository,
    RunLogRepository,
):
    """Batch job repository backed by PostgreSQL."""

    def __init__(
        self,
        dsn: str,
        min_pool_size: int = 1,
        max_pool_size: int = 10,
    ) -> None:
        self._dsn = dsn
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def load_checkpoint(self, job_name: str) -> Checkpoint | None:
        """Return the stored checkpoint for a job."""

        with self._storage_errors("load checkpoint"):
            pool = await self._get_pool()
            row = await pool.fetchrow(
                """
                SELECT job_name, run_id, worklist, cursor_position, total,
                    destination_ref, finalized
                FROM batch_checkpoints
                WHERE job_name = $1
                """,
                job_name,
            )
        if row is None:
            return None
        return self._to_checkpoint(row)

    async def save_checkpoint(
        self,
        checkpoint: Checkpoint,
        *,
        expected_run_id: str | None = None,
    ) -> bool:
        """Upsert a checkpoint; within one run the cursor only moves forward.

        With `expected_run_id` the row is only updated while it still belongs
        to that run.
        """

        if expected_run_id is not None:
            return await self._update_run_checkpoint(checkpoint, expected_run_id)

        with self._storage_errors("save checkpoint"):
            pool = await self._get_pool()
            await pool.execute(
                """
                INSERT INTO batch_checkpoints (
                    job_name,
                    run_id,
                    worklist,
                    cursor_position,
                    total,
                    destination_ref,
                    finalized,
                    updated_at
                ) VALUES ($1, $2, $3::jsonb, $4, $5, $6, $7, NOW())
                ON CONFLICT (job_name) DO UPDATE SET
                    worklist = CASE
                        WHEN batch_checkpoints.run_id = EXCLUDED.run_id
                        THEN batch_checkpoints.worklist
                        ELSE EXCLUDED.worklist
                    END,
                    cursor_position = CASE
                        WHEN batch_checkpoints.run_id = EXCLUDED.run_id
                        THEN GREATEST(batch_checkpoints.cursor_position, EXCLUDED.cursor_position)
                        ELSE EXCLUDED.cursor_position
                    END,
                    finalized = CASE
                        WHEN batch_checkpoints.run_id = EXCLUDED.run_id
                        THEN batch_checkpoints.finalized OR EXCLUDED.finalized
                        ELSE EXCLUDED.finalized
                    END,
                    run_id = EXCLUDED.run_id,
                    total = EXCLUDED.total,
                    destination_ref = EXCLUDED.destination_ref,
                    updated_at = NOW()
                """,
                checkpoint.job_name,
                checkpoint.run_id,
                json.dumps(checkpoint.worklist_payload()),
                checkpoint.cursor,
                checkpoint.total,
                checkpoint.destination_ref,
                checkpoint.finalized,
            )
        return True

    async def _update_run_checkpoint(self, checkpoint: Checkpoint, expected_run_id: str) -> bool:
        with self._storage_errors("save checkpoint"):
            pool = await self._get_pool()
            result = await pool.execute(
                """
                UPDATE batch_checkpoints
                SET cursor_position = GREATEST(cursor_position, $3),
                    destination_ref = $4,
                    finalized = finalized OR $5,
                    updated_at = NOW()
                WHERE job_name = $1
                  AND run_id = $2
                """,
                checkpoint.job_name,
                expected_run_id,
                checkpoint.cursor,
                checkpoint.destination_ref,
                checkpoint.finalized,
            )
        return self._affected_rows(result) == 1

    async def clear_triggers(self, job_name: str) -> int:
        """Delete all pending triggers for a job."""

        with self._storage_errors("clear triggers"):
            pool = await self._get_pool()
            result = await pool.execute(
                "DELETE FROM batch_triggers WHERE job_name = $1",
                job_name,
            )
        return self._affected_rows(result)

    async def replace_triggers(self, job_name: str, delay_seconds: float) -> TriggerHandle:
        """Clear and arm in one transaction serialized per job."""

        with self._storage_errors("arm trigger"):
            pool = await self._get_pool()
            async with pool.acquire() as connection:
                async with connection.transaction():
                    await connection.execute(
                        "SELECT pg_advisory_xact_lock(hashtext($1))",
                        job_name,
                    )
                    await connection.execute(
                        "DELETE FROM batch_triggers WHERE job_name = $1",
                        job_name,
                    )
                    row = await connection.fetchrow(
                        """
                        INSERT INTO batch_triggers (trigger_id, job_name, fire_at)
                        VALUES (
                            $1,
                            $2,
                            NOW() + ($3::double precision * INTERVAL '1 second')
                        )
                        RETURNING trigger_id, job_name, fire_at
                        """,
                        str(uuid4()),
                        job_name,
                        max(delay_seconds, 0.0),
                    )
        assert row is not None
        return self._to_trigger(row)

    async def list_triggers(self, job_name: str) -> list[TriggerHandle]:
        """Return pending triggers ordered by fire time."""

        with self._storage_errors("list triggers"):
            pool = await self._get_pool()
            rows = await pool.fetch(
                """
                SELECT trigger_id, job_name, fire_at
                FROM batch_triggers
                WHERE job_name = $1
                ORDER BY fire_at ASC, trigger_id ASC
                """,
                job_name,
            )
        return [self._to_trigger(row) for row in rows]

    async def claim_due_triggers(self, job_name: str, *, limit: int) -> list[TriggerHandle]:
        """Delete and return due triggers; concurrent claimers skip locked rows."""

        if limit <= 0:
            return []

        with self._storage_errors("claim triggers"):
            pool = await self._get_pool()
            rows = await pool.fetch(
                """
                WITH due AS (
                    SELECT trigger_id
                    FROM batch_triggers
                    WHERE job_name = $1
                      AND fire_at <= NOW()
                    ORDER BY fire_at ASC, trigger_id ASC
                    LIMIT $2
                    FOR UPDATE SKIP LOCKED
                )
                DELETE FROM batch_triggers AS triggers
                USING due
                WHERE triggers.trigger_id = due.trigger_id
                RETURNING triggers.trigger_id, triggers.job_name, triggers.fire_at
                """,
                job_name,
                limit,
            )
        return [self._to_trigger(row) for row in rows]

    async def append_log_record(self, job_name: str, record: LogRecord) -> None:
        """Append one run log row."""

        with self._storage_errors("append log record"):
            pool = await self._get_pool()
            await pool.execute(
                """
                INSERT INTO batch_run_log (
                    job_name,
                    logged_at,
                    item_id,
                    group_key,
                    status,
                    message,
                    artifact_ref
                ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                """,
                job_name,
                record.timestamp,
                record.item_id,
                record.group_key,
                record.status.value,
                record.message,
                record.artifact_ref,
            )

    async def list_log_records(self, job_name: str, *, limit: int = 100) -> list[LogRecord]:
        """Return the most recent rows in append order."""

        if limit <= 0:
            return []

        with self._storage_errors("list log records"):
            pool = await self._get_pool()
            rows = await pool.fetch(
                """
                SELECT logged_at, item_id, group_key, status, message, artifact_ref
                FROM (
                    SELECT id, logged_at, item_id, group_key, status, message, artifact_ref
                    FROM batch_run_log
                    WHERE job_name = $1
                    ORDER BY id DESC
                    LIMIT $2
                ) AS recent
                ORDER BY id ASC
                """,
                job_name,
                limit,
            )
        return [self._to_log_record(row) for row in rows]

    async def close(self) -> None:
        """Close the pool if it was initialized."""

        pool = self._pool
        self._pool = None
        if pool is not None:
            await pool.close()

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                pool = await asyncpg.create_pool(
                    dsn=self._dsn,
                    min_size=self._min_pool_size,
                    max_size=self._max_pool_size,
                )
                await self._ensure_schema(pool)
                self._pool = pool
        assert self._pool is not None
        return self._pool

    async def _ensure_schema(self, pool: asyncpg.Pool) -> None:
        await pool.execute(
            """
            CREATE TABLE IF NOT EXISTS batch_checkpoints (
                job_name TEXT PRIMARY KEY,
                run_id TEXT NOT NULL,
                worklist JSONB NOT NULL DEFAULT '[]'::jsonb,
                cursor_position INTEGER NOT NULL DEFAULT 0,
                total INTEGER NOT NULL DEFAULT 0,
                destination_ref TEXT,
                finalized BOOLEAN NOT NULL DEFAULT FALSE,
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                CHECK (cursor_position >= 0 AND cursor_position <= total)
            );
            ALTER TABLE batch_checkpoints
                ADD COLUMN IF NOT EXISTS finalized BOOLEAN NOT NULL DEFAULT FALSE;
            """
        )
        await pool.execute(
            """
            CREATE TABLE IF NOT EXISTS batch_triggers (
                trigger_id TEXT PRIMARY KEY,
                job_name TEXT NOT NULL,
                fire_at TIMESTAMPTZ NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            CREATE INDEX IF NOT EXISTS idx_batch_triggers_due
                ON batch_triggers (job_name, fire_at);
            """
        )
        await pool.execute(
            """
            CREATE TABLE IF NOT EXISTS batch_run_log (
                id BIGSERIAL PRIMARY KEY,
                job_name TEXT NOT NULL,
                logged_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                item_id TEXT NOT NULL DEFAULT '',
                group_key TEXT NOT NULL DEFAULT '',
                status TEXT NOT NULL,
                message TEXT NOT NULL DEFAULT '',
                artifact_ref TEXT NOT NULL DEFAULT ''
            );
            CREATE INDEX IF NOT EXISTS idx_batch_run_log_job
                ON batch_run_log (job_name, id);
            """
        )

    @contextmanager
    def _storage_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise CheckpointStoreError(f"Failed to {operation}: {exc}") from exc

    def _affected_rows(self, status: str) -> int:
        try:
            return int(status.rsplit(" ", 1)[-1])
        except ValueError:
            return 0

    def _to_checkpoint(self, row: asyncpg.Record) -> Checkpoint:
        worklist_raw = self._decode_json_field(row["worklist"])
        if not isinstance(worklist_raw, list):
            raise CheckpointStoreError(
                f"Expected list payload for worklist, got {type(worklist_raw)!r}."
            )
        return Checkpoint(
            job_name=str(row["job_name"]),
            run_id=str(row["run_id"]),
            worklist=tuple(WorkItem.from_dict(entry) for entry in worklist_raw),
            cursor=int(row["cursor_position"]),
            total=int(row["total"]),
            destination_ref=self._as_optional_str(row["destination_ref"]),
            finalized=bool(row["finalized"]),
        )

    def _to_trigger(self, row: asyncpg.Record) -> TriggerHandle:
        return TriggerHandle(
            trigger_id=str(row["trigger_id"]),
            job_name=str(row["job_name"]),
            fire_at=row["fire_at"],
        )

    def _to_log_record(self, row: asyncpg.Record) -> LogRecord:
        return LogRecord(
            timestamp=row["logged_at"],
            item_id=str(row["item_id"]),
            group_key=str(row["group_key"]),
            status=LogStatus(str(row["status"])),
            message=str(row["message"]),
            artifact_ref=str(row["artifact_ref"]),
        )

    def _decode_json_field(self, value: object) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return json.loads(value)
        return value

    def _as_optional_str(self, value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        raise TypeError(f"Expected optional string value, got {type(value)!r}.")


__all__ = ["PostgresBatchJobRepository"]
