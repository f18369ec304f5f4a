from __future__ import annotations

from src.study.content import LearningItem
from src.study.priority import sort_by_priority
from src.study.srs import SchedulingRecord


T = 1_750_000_000_000


def _scheduled(next_review_at: int) -> SchedulingRecord:
    return SchedulingRecord(interval=1, ease_factor=2.5, next_review_at=next_review_at, repetition_count=1)


def _ids(items: list[LearningItem]) -> list[str]:
    return [item.id for item in items]


def test_new_items_come_first_then_earliest_due() -> None:
    a, b, c = LearningItem("A"), LearningItem("B"), LearningItem("C")
    records = {"B": _scheduled(T + 1000), "C": _scheduled(T + 500)}

    assert _ids(sort_by_priority([a, b, c], records)) == ["A", "C", "B"]


def test_scheduled_items_sorted_ascending() -> None:
    items = [LearningItem(f"item_{index}") for index in range(6)]
    due_times = [T + 50, T - 10, T + 7, T + 3000, T - 999, T + 1]
    records = {item.id: _scheduled(due) for item, due in zip(items, due_times)}

    ordered = sort_by_priority(items, records)

    assert [records[item.id].next_review_at for item in ordered] == sorted(due_times)


def test_new_items_precede_overdue_items_and_keep_input_order() -> None:
    items = [LearningItem("old"), LearningItem("new_1"), LearningItem("new_2"), LearningItem("new_3")]
    records = {"old": _scheduled(1)}

    assert _ids(sort_by_priority(items, records)) == ["new_1", "new_2", "new_3", "old"]


def test_record_with_zero_review_time_counts_as_new() -> None:
    items = [LearningItem("scheduled"), LearningItem("zero")]
    records = {"scheduled": _scheduled(T), "zero": SchedulingRecord()}

    assert _ids(sort_by_priority(items, records)) == ["zero", "scheduled"]


def test_equal_due_times_keep_input_order() -> None:
    items = [LearningItem("x"), LearningItem("y"), LearningItem("z")]
    records = {item.id: _scheduled(T) for item in items}

    assert _ids(sort_by_priority(items, records)) == ["x", "y", "z"]


def test_sort_returns_new_list_without_mutating_input() -> None:
    items = [LearningItem("B"), LearningItem("A")]
    records = {"B": _scheduled(T)}

    ordered = sort_by_priority(items, records)

    assert ordered is not items
    assert _ids(items) == ["B", "A"]
    assert _ids(ordered) == ["A", "B"]


def test_empty_input() -> None:
    assert sort_by_priority([], {}) == []
