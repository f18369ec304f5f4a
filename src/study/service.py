"""Operations the study UI uses to schedule and order flashcards."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from src.db.srs_records import SchedulingRepository
from src.study.content import LearningItem
from src.study.priority import sort_by_priority
from src.study.srs import SchedulingRecord, difficulty_to_quality, to_epoch_ms


class StudyService:
    """Combine the SM-2 scheduler, its repository and the priority sorter.

    Callers grade each answer exactly once; repeated calls for the same answer
    are applied again.
    """

    def __init__(self, repository: SchedulingRepository) -> None:
        self._repository = repository

    async def get_due_record(self, item_id: str) -> SchedulingRecord:
        return await self._repository.get_record(item_id)

    async def grade_item(
        self,
        item_id: str,
        difficulty: str,
        *,
        now: Optional[datetime] = None,
    ) -> SchedulingRecord:
        """Grade ``item_id`` with a hard/medium/easy label and persist it."""
        quality = difficulty_to_quality(difficulty)
        return await self._repository.update_record(item_id, quality, now=now)

    async def order_items(self, items: Sequence[LearningItem]) -> list[LearningItem]:
        records = await self._repository.get_all_records()
        return sort_by_priority(items, records)

    async def count_due(
        self,
        items: Sequence[LearningItem],
        *,
        now: Optional[datetime] = None,
    ) -> int:
        """Count items that are new or whose review time has passed."""
        if now is None:
            now = datetime.now(timezone.utc)
        now_ms = to_epoch_ms(now)
        records = await self._repository.get_all_records()
        return sum(
            1
            for item in items
            if item.id not in records or records[item.id].is_due(now_ms)
        )
