"""HTTP API public API."""

from batch_report_runner.api.router import api_router

__all__ = ["api_router"]
