"""Ordering of learning items by review urgency."""

from __future__ import annotations

from typing import Mapping, Sequence

from src.study.content import LearningItem
from src.study.srs import SchedulingRecord


def _priority_key(item: LearningItem, records: Mapping[str, SchedulingRecord]) -> tuple[int, int]:
    record = records.get(item.id)
    if record is None or record.is_new:
        return (0, 0)
    return (1, record.next_review_at)


def sort_by_priority(
    items: Sequence[LearningItem],
    records: Mapping[str, SchedulingRecord],
) -> list[LearningItem]:
    """Return a new list with new items first, then earliest-due first.

    ``sorted`` is stable, so items with equal keys keep their input order.
    """
    return sorted(items, key=lambda item: _priority_key(item, records))
