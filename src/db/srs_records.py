"""Persistence of spaced-repetition records through the key-value store."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from src.study.srs import SchedulingRecord, calculate_next_record, default_record

from .kv_store import KeyValueStore, StorageWriteError


LOGGER = logging.getLogger(__name__)

SRS_STORAGE_KEY = "turkish_app_srs"


class SchedulingRepository:
    """Read and update scheduling records kept as one JSON mapping.

    All item records live in a single document, so every update rewrites the
    whole mapping. Updates are serialized with a lock to avoid lost writes
    when several coroutines grade items at once.
    """

    def __init__(self, store: KeyValueStore, storage_key: str = SRS_STORAGE_KEY) -> None:
        self._store = store
        self._storage_key = storage_key
        self._lock = asyncio.Lock()

    async def get_record(self, item_id: str) -> SchedulingRecord:
        """Return the stored record for ``item_id`` or the default one."""
        records = await self.get_all_records()
        return records.get(item_id, default_record())

    async def get_all_records(self) -> Dict[str, SchedulingRecord]:
        raw_mapping = await self._store.get(self._storage_key)
        return self._decode(raw_mapping)

    async def update_record(
        self,
        item_id: str,
        quality: int,
        *,
        now: Optional[datetime] = None,
    ) -> SchedulingRecord:
        """Apply a grade to ``item_id`` and persist the resulting record.

        Storage failures propagate; the previously stored record stays intact.
        """
        async with self._lock:
            raw_mapping = await self._store.get(self._storage_key)
            records = self._decode(raw_mapping)
            current = records.get(item_id, default_record())
            updated = calculate_next_record(current, quality, now=now)

            payload = dict(raw_mapping) if isinstance(raw_mapping, dict) else {}
            payload[item_id] = updated.to_dict()

            if not await self._store.set(self._storage_key, payload):
                raise StorageWriteError(f"Scheduling record for {item_id!r} was not saved.")

        LOGGER.debug(
            "Scheduled %s: interval=%s ease=%.2f repetitions=%s",
            item_id,
            updated.interval,
            updated.ease_factor,
            updated.repetition_count,
        )
        return updated

    def _decode(self, raw_mapping: Any) -> Dict[str, SchedulingRecord]:
        if raw_mapping is None:
            return {}
        if not isinstance(raw_mapping, dict):
            LOGGER.warning("Scheduling data under %s is not a mapping; ignoring it.", self._storage_key)
            return {}

        records: Dict[str, SchedulingRecord] = {}
        for item_id, raw_record in raw_mapping.items():
            if not isinstance(raw_record, dict):
                LOGGER.warning("Ignoring malformed scheduling record for %s.", item_id)
                continue
            try:
                records[item_id] = SchedulingRecord.from_dict(raw_record)
            except (TypeError, ValueError, OverflowError):
                LOGGER.warning("Ignoring malformed scheduling record for %s.", item_id)
        return records
