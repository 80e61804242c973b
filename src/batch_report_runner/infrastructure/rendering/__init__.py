"""Report renderer adapters."""

from batch_report_runner.infrastructure.rendering.http_report_renderer import HttpReportRenderer

__all__ = ["HttpReportRenderer"]
