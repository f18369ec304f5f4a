from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pytest

from src.db.kv_store import SQLKeyValueStore, StorageFullError, StorageWriteError
from src.db.srs_records import SRS_STORAGE_KEY, SchedulingRepository
from src.study.srs import ONE_DAY_MS, SchedulingRecord, default_record, to_epoch_ms


NOW = datetime(2026, 5, 4, 12, 0, tzinfo=timezone.utc)


class _MemoryStore:
    def __init__(self, data: Optional[Dict[str, Any]] = None) -> None:
        self.data: Dict[str, Any] = dict(data or {})
        self.set_calls = 0
        self.accept_writes = True

    async def get(self, key: str) -> Optional[Any]:
        await asyncio.sleep(0)
        return self.data.get(key)

    async def set(self, key: str, value: Any) -> bool:
        await asyncio.sleep(0)
        self.set_calls += 1
        if not self.accept_writes:
            return False
        self.data[key] = value
        return True

    async def has(self, key: str) -> bool:
        return key in self.data

    async def remove(self, key: str) -> bool:
        self.data.pop(key, None)
        return True


@pytest.mark.asyncio
async def test_unknown_item_gets_default_record(repository: SchedulingRepository) -> None:
    record = await repository.get_record("chunk_0")

    assert record == default_record()
    assert record.interval == 0
    assert record.ease_factor == 2.5
    assert record.next_review_at == 0
    assert record.repetition_count == 0


@pytest.mark.asyncio
async def test_update_then_get_returns_same_record(
    repository: SchedulingRepository, store: SQLKeyValueStore
) -> None:
    updated = await repository.update_record("chunk_1", 5, now=NOW)

    assert updated.interval == 1
    assert updated.next_review_at == to_epoch_ms(NOW) + ONE_DAY_MS
    assert await repository.get_record("chunk_1") == updated
    assert await store.get(SRS_STORAGE_KEY) == {"chunk_1": updated.to_dict()}


@pytest.mark.asyncio
async def test_repeated_reads_are_identical(repository: SchedulingRepository) -> None:
    await repository.update_record("chunk_1", 3, now=NOW)

    first = await repository.get_record("chunk_1")
    second = await repository.get_record("chunk_1")

    assert first == second
    assert first.ease_factor.hex() == second.ease_factor.hex()


@pytest.mark.asyncio
async def test_updates_keep_other_items(repository: SchedulingRepository) -> None:
    first = await repository.update_record("a", 5, now=NOW)
    await repository.update_record("b", 1, now=NOW)
    second_a = await repository.update_record("a", 5, now=NOW)

    records = await repository.get_all_records()

    assert set(records) == {"a", "b"}
    assert first.interval == 1
    assert second_a.interval == 6
    assert records["a"] == second_a
    assert records["b"].repetition_count == 0


@pytest.mark.asyncio
async def test_corrupt_document_reads_as_empty(session_factory, store: SQLKeyValueStore) -> None:
    from src.db import KeyValueEntry

    async with session_factory() as session:
        async with session.begin():
            session.add(KeyValueEntry(key=SRS_STORAGE_KEY, value="{]"))

    repository = SchedulingRepository(store)

    assert await repository.get_all_records() == {}
    assert await repository.get_record("chunk_0") == default_record()

    updated = await repository.update_record("chunk_0", 5, now=NOW)
    assert await repository.get_record("chunk_0") == updated


@pytest.mark.asyncio
async def test_malformed_entries_are_skipped() -> None:
    store = _MemoryStore(
        {
            SRS_STORAGE_KEY: {
                "good": {"interval": 6, "easeFactor": 2.6, "nextReview": 42, "repetitions": 2},
                "not_a_dict": [1, 2, 3],
                "bad_number": {"interval": "soon"},
                "partial": {"nextReview": 99},
            }
        }
    )
    repository = SchedulingRepository(store)

    records = await repository.get_all_records()

    assert set(records) == {"good", "partial"}
    assert records["good"] == SchedulingRecord(6, 2.6, 42, 2)
    assert records["partial"] == SchedulingRecord(next_review_at=99)
    assert await repository.get_record("bad_number") == default_record()


@pytest.mark.asyncio
async def test_non_mapping_document_reads_as_empty() -> None:
    repository = SchedulingRepository(_MemoryStore({SRS_STORAGE_KEY: ["oops"]}))

    assert await repository.get_all_records() == {}


@pytest.mark.asyncio
async def test_storage_full_propagates_and_keeps_old_record(session_factory) -> None:
    store = SQLKeyValueStore(session_factory, capacity_bytes=400)
    repository = SchedulingRepository(store)
    saved = await repository.update_record("a", 5, now=NOW)

    with pytest.raises(StorageFullError):
        for index in range(20):
            await repository.update_record(f"item_{index}", 5, now=NOW)

    assert await repository.get_record("a") == saved


@pytest.mark.asyncio
async def test_rejected_write_raises() -> None:
    store = _MemoryStore()
    store.accept_writes = False
    repository = SchedulingRepository(store)

    with pytest.raises(StorageWriteError):
        await repository.update_record("a", 5, now=NOW)

    assert await repository.get_record("a") == default_record()


@pytest.mark.asyncio
async def test_concurrent_updates_do_not_lose_writes() -> None:
    store = _MemoryStore()
    repository = SchedulingRepository(store)

    await asyncio.gather(*(repository.update_record(f"item_{index}", 5, now=NOW) for index in range(10)))

    records = await repository.get_all_records()
    assert set(records) == {f"item_{index}" for index in range(10)}
    assert store.set_calls == 10


@pytest.mark.asyncio
async def test_custom_storage_key() -> None:
    store = _MemoryStore()
    repository = SchedulingRepository(store, storage_key="profile_2_srs")

    await repository.update_record("a", 4, now=NOW)

    assert set(store.data) == {"profile_2_srs"}


@pytest.mark.asyncio
async def test_non_finite_and_out_of_range_entries_read_as_new(
    session_factory, store: SQLKeyValueStore
) -> None:
    from src.db import KeyValueEntry

    async with session_factory() as session:
        async with session.begin():
            session.add(
                KeyValueEntry(
                    key=SRS_STORAGE_KEY,
                    value=(
                        '{"huge": {"nextReview": 1e999}, "nan_ease": {"easeFactor": NaN},'
                        ' "inf_interval": {"interval": Infinity}, "low_ease": {"easeFactor": 0.4},'
                        ' "negative": {"repetitions": -2},'
                        ' "fine": {"interval": 1, "easeFactor": 1.3, "nextReview": 5, "repetitions": 1}}'
                    ),
                )
            )

    repository = SchedulingRepository(store)

    assert set(await repository.get_all_records()) == {"fine"}
    assert await repository.get_record("huge") == default_record()

    updated = await repository.update_record("nan_ease", 5, now=NOW)

    assert updated.ease_factor == pytest.approx(2.6)
    assert updated.interval == 1
    assert await repository.get_record("nan_ease") == updated
