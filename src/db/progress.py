"""Per-topic learner progress kept in the key-value store."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from src.study.srs import to_epoch_ms

from .kv_store import KeyValueStore, StorageWriteError


LOGGER = logging.getLogger(__name__)

PROGRESS_STORAGE_KEY = "turkish_app_progress"


@dataclass(frozen=True, slots=True)
class TopicProgress:
    """Games played and the best score reached for one topic."""

    games_played: Tuple[str, ...] = ()
    last_played: Optional[int] = None
    best_score: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "gamesPlayed": list(self.games_played),
            "lastPlayed": self.last_played,
            "bestScore": self.best_score,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TopicProgress:
        games = data.get("gamesPlayed") or []
        if not isinstance(games, list):
            raise ValueError("gamesPlayed must be a list.")
        last_played = data.get("lastPlayed")
        return cls(
            games_played=tuple(str(game) for game in games),
            last_played=None if last_played is None else int(_non_negative(last_played, "lastPlayed")),
            best_score=int(_non_negative(data.get("bestScore", 0), "bestScore")),
        )


@dataclass(frozen=True, slots=True)
class LearnerProgress:
    """Totals across every topic the learner has practised."""

    topics_completed: Dict[str, TopicProgress] = field(default_factory=dict)
    total_time_spent: int = 0
    chunks_learned: int = 0
    overall_accuracy: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "topicsCompleted": {
                topic_id: topic.to_dict() for topic_id, topic in self.topics_completed.items()
            },
            "totalTimeSpent": self.total_time_spent,
            "chunksLearned": self.chunks_learned,
            "overallAccuracy": self.overall_accuracy,
        }


def _non_negative(value: Any, name: str) -> float:
    number = float(value)
    if not math.isfinite(number) or number < 0:
        raise ValueError(f"{name} must be a finite non-negative number, got {value!r}.")
    return number


def overall_accuracy(topics: Mapping[str, TopicProgress], previous: float = 0.0) -> float:
    """Mean of the non-zero best scores; ``previous`` when there are none."""
    scores = [topic.best_score for topic in topics.values() if topic.best_score > 0]
    if not scores:
        return previous
    return sum(scores) / len(scores)


class ProgressRepository:
    """Read and update the learner's progress document.

    Missing fields are filled from defaults on read, so documents written by
    older versions keep working.
    """

    def __init__(self, store: KeyValueStore, storage_key: str = PROGRESS_STORAGE_KEY) -> None:
        self._store = store
        self._storage_key = storage_key
        self._lock = asyncio.Lock()

    async def get_progress(self) -> LearnerProgress:
        return self._decode(await self._store.get(self._storage_key))

    async def get_topic_progress(self, topic_id: str) -> TopicProgress:
        progress = await self.get_progress()
        return progress.topics_completed.get(topic_id, TopicProgress())

    async def record_game_result(
        self,
        topic_id: str,
        game_id: str,
        *,
        percentage: int,
        time_spent: int,
        chunks_learned: int,
        now: Optional[datetime] = None,
    ) -> LearnerProgress:
        """Fold one finished game into the topic's progress and the totals."""
        if now is None:
            now = datetime.now(timezone.utc)

        async with self._lock:
            progress = self._decode(await self._store.get(self._storage_key))
            topics = dict(progress.topics_completed)
            topic = topics.get(topic_id, TopicProgress())

            games = topic.games_played
            if game_id not in games:
                games = games + (game_id,)
            topics[topic_id] = replace(
                topic,
                games_played=games,
                last_played=to_epoch_ms(now),
                best_score=max(topic.best_score, percentage),
            )

            updated = LearnerProgress(
                topics_completed=topics,
                total_time_spent=progress.total_time_spent + time_spent,
                chunks_learned=progress.chunks_learned + chunks_learned,
                overall_accuracy=overall_accuracy(topics, progress.overall_accuracy),
            )
            if not await self._store.set(self._storage_key, updated.to_dict()):
                raise StorageWriteError(f"Progress for topic {topic_id!r} was not saved.")

        LOGGER.info(
            "Recorded %s for topic %s: %s%%, %ss, %s chunks.",
            game_id,
            topic_id,
            percentage,
            time_spent,
            chunks_learned,
        )
        return updated

    async def reset(self) -> bool:
        return await self._store.remove(self._storage_key)

    def _decode(self, raw: Any) -> LearnerProgress:
        if raw is None:
            return LearnerProgress()
        if not isinstance(raw, dict):
            LOGGER.warning("Progress data under %s is not a mapping; using defaults.", self._storage_key)
            return LearnerProgress()

        topics: Dict[str, TopicProgress] = {}
        raw_topics = raw.get("topicsCompleted") or {}
        if isinstance(raw_topics, dict):
            for topic_id, raw_topic in raw_topics.items():
                if not isinstance(raw_topic, dict):
                    LOGGER.warning("Ignoring malformed progress for topic %s.", topic_id)
                    continue
                try:
                    topics[topic_id] = TopicProgress.from_dict(raw_topic)
                except (TypeError, ValueError, OverflowError):
                    LOGGER.warning("Ignoring malformed progress for topic %s.", topic_id)

        totals: Dict[str, float] = {}
        for name in ("totalTimeSpent", "chunksLearned", "overallAccuracy"):
            try:
                totals[name] = _non_negative(raw.get(name, 0), name)
            except (TypeError, ValueError, OverflowError):
                LOGGER.warning("Ignoring malformed %s in progress data.", name)
                totals[name] = 0.0

        return LearnerProgress(
            topics_completed=topics,
            total_time_spent=int(totals["totalTimeSpent"]),
            chunks_learned=int(totals["chunksLearned"]),
            overall_accuracy=totals["overallAccuracy"],
        )
