"""Worklist construction and sampling."""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence

from batch_report_runner.domain.job_models import SourceRow
from batch_report_runner.domain.models import WorkItem

RawRow = SourceRow | WorkItem | Sequence[str | None]


def _row_fields(row: RawRow) -> tuple[str | None, str | None]:
    if isinstance(row, WorkItem):
        return row.item_id, row.group_key
    if isinstance(row, SourceRow):
        return row.id, row.group_key
    if len(row) < 2:
        return (row[0] if row else None), None
    return row[0], row[1]


def build_worklist(rows: Iterable[RawRow]) -> tuple[WorkItem, ...]:
    """Convert raw rows into work items, dropping rows without id or group key."""

    items: list[WorkItem] = []
    for row in rows:
        raw_id, raw_group = _row_fields(row)
        item_id = "" if raw_id is None else str(raw_id).strip()
        group_key = "" if raw_group is None else str(raw_group).strip()
        if not item_id or not group_key:
            continue
        items.append(WorkItem(item_id=item_id, group_key=group_key))
    return tuple(items)


def sample_work_items(
    items: Sequence[WorkItem],
    sample_size: int,
    rng: random.Random,
) -> tuple[WorkItem, ...]:
    """Draw up to `sample_size` items without replacement.

    Picked items keep their source order. Asking for more items than exist
    returns all of them.
    """

    if sample_size < 1:
        raise ValueError("sample_size must be >= 1.")
    count = min(sample_size, len(items))
    picked = sorted(rng.sample(range(len(items)), count))
    return tuple(items[index] for index in picked)


__all__ = ["RawRow", "build_worklist", "sample_work_items"]
