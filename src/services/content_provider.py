"""Generation and caching of vocabulary chunks for a topic."""

from __future__ import annotations

import json
import logging
import time
from typing import List

from openai import AsyncOpenAI

from src.db.kv_store import KeyValueStore, StorageError
from src.services.openai_utils import extract_output_text, strip_code_fences
from src.study.content import LearningItem, Topic, parse_learning_items


LOGGER = logging.getLogger(__name__)

CONTENT_CACHE_PREFIX = "turkish_app_content_"
MIN_CHUNKS = 25
MAX_CHUNKS = 35


class ContentGenerationError(RuntimeError):
    """Raised when the model response cannot be turned into learning items."""


def cache_key(topic_id: str) -> str:
    return f"{CONTENT_CACHE_PREFIX}{topic_id}"


def build_prompt(topic: Topic) -> str:
    return (
        "Generate study material for learners of Turkish whose native language is Russian.\n"
        f"Topic: {topic.name}\n"
        f"Level: {topic.level}\n"
        f"Category: {topic.category}\n"
        f"Description: {topic.description}\n\n"
        f"Produce {MIN_CHUNKS}-{MAX_CHUNKS} practical phrases (chunks) related to the topic, "
        "using Turkish SOV word order and vowel harmony. "
        "Respond with JSON only, without commentary or code fences, shaped as "
        '{"chunks": [{"id": "chunk_1", "turkish": "...", "russian": "...", "example": "...", '
        '"exampleTranslation": "...", "grammarNote": "... or null", '
        '"words": [{"text": "...", "role": "subject|object|verb|other"}]}]}'
    )


class ContentProvider:
    """Produce learning items for a topic, reusing cached content when present."""

    def __init__(self, client: AsyncOpenAI, model: str, store: KeyValueStore) -> None:
        self._client = client
        self._model = model
        self._store = store

    async def generate_content(self, topic: Topic) -> List[LearningItem]:
        cached = await self._load_cached(topic.id)
        if cached is not None:
            LOGGER.info("Using cached content for topic %s.", topic.id)
            return cached

        response = await self._client.responses.create(
            model=self._model,
            input=[{"role": "user", "content": build_prompt(topic)}],
        )
        items = self.parse_response(extract_output_text(response))

        document = {
            "topicId": topic.id,
            "generatedAt": int(time.time() * 1000),
            "chunks": [item.to_dict() for item in items],
        }
        try:
            await self._store.set(cache_key(topic.id), document)
        except StorageError:
            LOGGER.exception("Could not cache generated content for topic %s.", topic.id)

        return items

    async def clear_cache(self, topic_id: str) -> bool:
        return await self._store.remove(cache_key(topic_id))

    @staticmethod
    def parse_response(raw_text: str) -> List[LearningItem]:
        """Turn model output into learning items or raise ``ContentGenerationError``."""
        cleaned = strip_code_fences(raw_text)
        if not cleaned:
            raise ContentGenerationError("Empty response from the content model.")

        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Failed to parse content response: %s", cleaned)
            raise ContentGenerationError("Content model returned malformed JSON.") from exc

        if not isinstance(payload, dict):
            raise ContentGenerationError("Content response is not a JSON object.")

        try:
            return parse_learning_items(payload.get("chunks"))
        except ValueError as exc:
            raise ContentGenerationError(f"Invalid content structure: {exc}") from exc

    async def _load_cached(self, topic_id: str) -> List[LearningItem] | None:
        document = await self._store.get(cache_key(topic_id))
        if document is None:
            return None
        if not isinstance(document, dict):
            LOGGER.warning("Cached content for topic %s is malformed; regenerating.", topic_id)
            return None
        try:
            return parse_learning_items(document.get("chunks"))
        except ValueError:
            LOGGER.warning("Cached content for topic %s is malformed; regenerating.", topic_id)
            return None
