"""Continuation scheduling runtime."""

from batch_report_runner.infrastructure.continuations.continuation_dispatcher import (
    ContinuationDispatcher,
)

__all__ = ["ContinuationDispatcher"]
