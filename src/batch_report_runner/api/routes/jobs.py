"""Manual entry points for starting and advancing the batch job."""

from __future__ import annotations

from typing import NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query

from batch_report_runner.api.dependencies import get_batch_runtime
from batch_report_runner.bootstrap import BatchRuntime
from batch_report_runner.domain.errors import ConfigurationError
from batch_report_runner.domain.job_models import (
    ChunkReportResponse,
    JobStatusResponse,
    LogListResponse,
    LogRecordResponse,
    SampleJobRequest,
    StartJobRequest,
)

router = APIRouter(prefix="/jobs", tags=["batch jobs"])


def _raise_http_exception(exc: Exception) -> NoReturn:
    if isinstance(exc, ConfigurationError):
        raise HTTPException(status_code=400, detail=str(exc))
    raise HTTPException(status_code=500, detail="Unexpected batch job error")


async def _status_response(runtime: BatchRuntime) -> JobStatusResponse:
    checkpoint = await runtime.repository.load_checkpoint(runtime.settings.job_name)
    if checkpoint is None:
        raise HTTPException(
            status_code=404,
            detail=f"No run exists for job '{runtime.settings.job_name}'.",
        )
    triggers = await runtime.trigger_manager.pending()
    return JobStatusResponse.from_checkpoint(checkpoint, triggers)


@router.post("/start", response_model=JobStatusResponse, status_code=202)
async def start_full_run(
    request: StartJobRequest,
    runtime: BatchRuntime = Depends(get_batch_runtime),
) -> JobStatusResponse:
    """Start a run over every well-formed source row."""

    try:
        checkpoint = await runtime.job_controller.start(request.rows)
        triggers = await runtime.trigger_manager.pending()
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return JobStatusResponse.from_checkpoint(checkpoint, triggers)


@router.post("/sample", response_model=JobStatusResponse, status_code=202)
async def start_sample_run(
    request: SampleJobRequest,
    runtime: BatchRuntime = Depends(get_batch_runtime),
) -> JobStatusResponse:
    """Start a run over a random sample of the source rows."""

    try:
        checkpoint = await runtime.job_controller.start(
            request.rows,
            sample_size=request.sample_size,
            seed=request.seed,
        )
        triggers = await runtime.trigger_manager.pending()
    except Exception as exc:  # noqa: BLE001
        _raise_http_exception(exc)
    return JobStatusResponse.from_checkpoint(checkpoint, triggers)


@router.post("/run-chunk", response_model=ChunkReportResponse, status_code=200)
async def run_chunk_now(
    runtime: BatchRuntime = Depends(get_batch_runtime),
) -> ChunkReportResponse:
    """Force one chunk without waiting for the pending continuation."""

    report = await runtime.batch_executor.run_chunk()
    return ChunkReportResponse.from_report(report)


@router.get("/status", response_model=JobStatusResponse, status_code=200)
async def get_job_status(
    runtime: BatchRuntime = Depends(get_batch_runtime),
) -> JobStatusResponse:
    """Return checkpoint progress and the pending continuation."""

    return await _status_response(runtime)


@router.get("/log", response_model=LogListResponse, status_code=200)
async def list_log_records(
    limit: int = Query(default=100, ge=1, le=1000),
    runtime: BatchRuntime = Depends(get_batch_runtime),
) -> LogListResponse:
    """Return the most recent run log records."""

    records = await runtime.repository.list_log_records(runtime.settings.job_name, limit=limit)
    return LogListResponse(
        job_name=runtime.settings.job_name,
        records=[LogRecordResponse.from_record(record) for record in records],
    )


__all__ = ["router"]
