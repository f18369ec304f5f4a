"""A single flashcard pass over a topic's items."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from src.db.progress import LearnerProgress, ProgressRepository
from src.study.content import LearningItem
from src.study.service import StudyService
from src.study.srs import difficulty_to_quality, round_half_up


LOGGER = logging.getLogger(__name__)

FLASHCARDS_GAME_ID = "flashcards"


class DrillCompletedError(RuntimeError):
    """Raised when rating a card after the drill has run out of cards."""


class DrillNotFinishedError(RuntimeError):
    """Raised when saving the results of a drill that still has cards left."""


@dataclass(frozen=True, slots=True)
class DrillAnswer:
    item_id: str
    difficulty: str
    quality: int
    new_interval: int


@dataclass(frozen=True, slots=True)
class DrillResults:
    """Tally of a finished (or interrupted) drill.

    ``correct`` and ``chunks_learned`` count cards rated easy or medium;
    ``percentage`` is the share rated easy.
    """

    total: int
    easy: int
    medium: int
    hard: int
    percentage: int
    correct: int
    chunks_learned: int
    time_spent: int


class FlashcardDrill:
    """Walk through items in priority order, grading one card at a time."""

    def __init__(
        self,
        service: StudyService,
        cards: Sequence[LearningItem],
        *,
        started_at: Optional[datetime] = None,
    ) -> None:
        self._service = service
        self._cards = list(cards)
        self._index = 0
        self._answers: List[DrillAnswer] = []
        self._started_at = started_at or datetime.now(timezone.utc)

    @classmethod
    async def start(
        cls,
        service: StudyService,
        items: Sequence[LearningItem],
        *,
        now: Optional[datetime] = None,
    ) -> FlashcardDrill:
        """Create a drill with ``items`` ordered by review priority."""
        cards = await service.order_items(items)
        LOGGER.info("Starting flashcard drill with %s cards.", len(cards))
        return cls(service, cards, started_at=now)

    @property
    def cards(self) -> tuple[LearningItem, ...]:
        return tuple(self._cards)

    @property
    def answers(self) -> tuple[DrillAnswer, ...]:
        return tuple(self._answers)

    @property
    def current_item(self) -> Optional[LearningItem]:
        if self.is_complete:
            return None
        return self._cards[self._index]

    @property
    def is_complete(self) -> bool:
        return self._index >= len(self._cards)

    async def rate(self, difficulty: str, *, now: Optional[datetime] = None) -> DrillAnswer:
        """Grade the current card and move to the next one.

        A storage failure propagates and leaves the drill on the same card.
        """
        item = self.current_item
        if item is None:
            raise DrillCompletedError("All cards in this drill have already been rated.")

        record = await self._service.grade_item(item.id, difficulty, now=now)
        answer = DrillAnswer(
            item_id=item.id,
            difficulty=difficulty,
            quality=difficulty_to_quality(difficulty),
            new_interval=record.interval,
        )
        self._answers.append(answer)
        self._index += 1
        return answer

    def results(self, now: Optional[datetime] = None) -> DrillResults:
        if now is None:
            now = datetime.now(timezone.utc)

        easy = sum(1 for answer in self._answers if answer.difficulty == "easy")
        medium = sum(1 for answer in self._answers if answer.difficulty == "medium")
        hard = sum(1 for answer in self._answers if answer.difficulty == "hard")
        total = len(self._answers)
        percentage = round_half_up(easy / total * 100) if total else 0
        elapsed = max(0.0, (now - self._started_at).total_seconds())
        return DrillResults(
            total=total,
            easy=easy,
            medium=medium,
            hard=hard,
            percentage=percentage,
            correct=easy + medium,
            chunks_learned=easy + medium,
            time_spent=round_half_up(elapsed),
        )

    async def save_results(
        self,
        progress: ProgressRepository,
        topic_id: str,
        *,
        now: Optional[datetime] = None,
    ) -> LearnerProgress:
        """Record the finished drill against ``topic_id``."""
        if not self.is_complete:
            raise DrillNotFinishedError(
                f"{len(self._cards) - self._index} cards are still waiting to be rated."
            )

        results = self.results(now)
        return await progress.record_game_result(
            topic_id,
            FLASHCARDS_GAME_ID,
            percentage=results.percentage,
            time_spent=results.time_spent,
            chunks_learned=results.chunks_learned,
            now=now,
        )
