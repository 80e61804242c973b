"""Resumable chunked batch runner for per-item report exports."""

__version__ = "0.1.0"

__all__ = ["__version__"]
