"""Spaced-repetition scheduling helpers for flashcard reviews."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping


LOGGER = logging.getLogger(__name__)

DEFAULT_EASE_FACTOR = 2.5
MIN_EASE_FACTOR = 1.3
MIN_QUALITY = 0
MAX_QUALITY = 5
PASSING_QUALITY = 3
ONE_DAY_MS = 24 * 60 * 60 * 1000

DIFFICULTY_QUALITY = {
    "hard": 1,
    "medium": 3,
    "easy": 5,
}
DEFAULT_QUALITY = 3

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True, slots=True)
class SchedulingRecord:
    """Review state of a single learning item."""

    interval: int = 0
    ease_factor: float = DEFAULT_EASE_FACTOR
    next_review_at: int = 0
    repetition_count: int = 0

    @property
    def is_new(self) -> bool:
        return self.next_review_at == 0

    def is_due(self, now_ms: int) -> bool:
        """New items count as due."""
        return self.is_new or self.next_review_at <= now_ms

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the field names of the persisted SRS document."""
        return {
            "interval": self.interval,
            "easeFactor": self.ease_factor,
            "nextReview": self.next_review_at,
            "repetitions": self.repetition_count,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SchedulingRecord:
        """Build a record from persisted data, defaulting any missing field.

        Raises ``ValueError`` for non-finite numbers and values that break the
        record invariants (ease below the floor, negative counters).
        """
        default = cls()
        interval = _finite(data.get("interval", default.interval), "interval")
        ease_factor = _finite(data.get("easeFactor", default.ease_factor), "easeFactor")
        next_review_at = _finite(data.get("nextReview", default.next_review_at), "nextReview")
        repetition_count = _finite(data.get("repetitions", default.repetition_count), "repetitions")

        if ease_factor < MIN_EASE_FACTOR:
            raise ValueError(f"easeFactor {ease_factor} is below {MIN_EASE_FACTOR}.")
        if min(interval, next_review_at, repetition_count) < 0:
            raise ValueError("interval, nextReview and repetitions must not be negative.")

        return cls(
            interval=int(interval),
            ease_factor=ease_factor,
            next_review_at=int(next_review_at),
            repetition_count=int(repetition_count),
        )


def _finite(value: Any, name: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{name} must be a finite number, got {value!r}.")
    return number


def default_record() -> SchedulingRecord:
    """Return the record used for items that were never graded."""
    return SchedulingRecord()


def to_epoch_ms(moment: datetime) -> int:
    """Convert an aware datetime to integer epoch milliseconds."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def round_half_up(value: float) -> int:
    # Intervals are always positive, so flooring after +0.5 rounds halves up.
    return math.floor(value + 0.5)


def clamp_quality(quality: int) -> int:
    clamped = max(MIN_QUALITY, min(MAX_QUALITY, quality))
    if clamped != quality:
        LOGGER.debug("Quality %s is outside [0, 5]; using %s.", quality, clamped)
    return clamped


def difficulty_to_quality(difficulty: str) -> int:
    """Map a hard/medium/easy label to an SM-2 quality grade."""
    return DIFFICULTY_QUALITY.get(difficulty, DEFAULT_QUALITY)


def calculate_next_record(
    previous: SchedulingRecord,
    quality: int,
    *,
    now: datetime | None = None,
) -> SchedulingRecord:
    """Return the next review record using the SM-2 recurrence.

    The ease factor is recalibrated on every grade, including failed ones, and
    never drops below ``MIN_EASE_FACTOR``. Quality is clamped into ``[0, 5]``.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    quality = clamp_quality(quality)
    repetition = previous.repetition_count

    if quality >= PASSING_QUALITY:
        if repetition == 0:
            interval = 1
        elif repetition == 1:
            interval = 6
        else:
            interval = max(1, round_half_up(previous.interval * previous.ease_factor))
        repetition += 1
    else:
        repetition = 0
        interval = 1

    penalty = MAX_QUALITY - quality
    ease_factor = previous.ease_factor + (0.1 - penalty * (0.08 + penalty * 0.02))
    # Written as a negated comparison so NaN also falls back to the floor.
    if not ease_factor >= MIN_EASE_FACTOR:
        ease_factor = MIN_EASE_FACTOR

    return SchedulingRecord(
        interval=interval,
        ease_factor=ease_factor,
        next_review_at=to_epoch_ms(now) + interval * ONE_DAY_MS,
        repetition_count=repetition,
    )
