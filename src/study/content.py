"""Learning items and topics produced by the content provider."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass(frozen=True, slots=True)
class Topic:
    """A vocabulary topic that content is generated for."""

    id: str
    name: str
    level: str
    category: str
    description: str = ""


@dataclass(frozen=True, slots=True)
class LearningItem:
    """A generated vocabulary chunk; only ``id`` matters for scheduling."""

    id: str
    turkish: str = ""
    russian: str = ""
    example: str = ""
    example_translation: str = ""
    grammar_note: Optional[str] = None
    words: List[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "turkish": self.turkish,
            "russian": self.russian,
            "example": self.example,
            "exampleTranslation": self.example_translation,
            "grammarNote": self.grammar_note,
            "words": [dict(word) for word in self.words],
        }


def _text(value: object) -> str:
    if isinstance(value, str):
        return value.strip()
    return ""


def _words(value: object) -> List[dict[str, str]]:
    if not isinstance(value, list):
        return []
    words: List[dict[str, str]] = []
    for raw_word in value:
        if not isinstance(raw_word, dict):
            continue
        text = _text(raw_word.get("text"))
        if not text:
            continue
        words.append({"text": text, "role": _text(raw_word.get("role")) or "other"})
    return words


def parse_learning_item(raw_chunk: object, index: int) -> LearningItem:
    """Validate one raw chunk, applying defaults for missing fields.

    Chunks without an ``id`` get ``chunk_<index>``. Anything that is not a
    JSON object raises ``ValueError``.
    """
    if not isinstance(raw_chunk, dict):
        raise ValueError(f"Chunk #{index} is not an object.")

    item_id = _text(raw_chunk.get("id")) or f"chunk_{index}"
    grammar_note = _text(raw_chunk.get("grammarNote")) or None

    return LearningItem(
        id=item_id,
        turkish=_text(raw_chunk.get("turkish")),
        russian=_text(raw_chunk.get("russian")),
        example=_text(raw_chunk.get("example")),
        example_translation=_text(raw_chunk.get("exampleTranslation")),
        grammar_note=grammar_note,
        words=_words(raw_chunk.get("words")),
    )


def parse_learning_items(raw_chunks: object) -> List[LearningItem]:
    """Validate a list of raw chunks into learning items."""
    if not isinstance(raw_chunks, list):
        raise ValueError("Content is missing the chunks array.")
    return [parse_learning_item(raw_chunk, index) for index, raw_chunk in enumerate(raw_chunks)]
