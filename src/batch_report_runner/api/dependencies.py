"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from batch_report_runner.bootstrap import BatchRuntime, build_batch_runtime
from batch_report_runner.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


@lru_cache(maxsize=1)
def get_batch_runtime() -> BatchRuntime:
    """Return singleton service graph."""

    return build_batch_runtime(get_settings())


__all__ = ["get_batch_runtime", "get_settings"]
