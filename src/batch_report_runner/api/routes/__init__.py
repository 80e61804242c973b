"""Route modules public API."""

from batch_report_runner.api.routes.health import router as health_router
from batch_report_runner.api.routes.jobs import router as jobs_router

__all__ = ["health_router", "jobs_router"]
