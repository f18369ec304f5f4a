"""Key-value persistence for JSON documents."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from . import KeyValueEntry


LOGGER = logging.getLogger(__name__)

DEFAULT_CAPACITY_BYTES = 5 * 1024 * 1024


class StorageError(RuntimeError):
    """Base class for key-value storage failures."""


class StorageFullError(StorageError):
    """Raised when a write would exceed the store's capacity."""


class StorageWriteError(StorageError):
    """Raised when a write was rejected for a reason other than capacity."""


@dataclass(frozen=True, slots=True)
class StorageInfo:
    """Approximate usage of the key-value store."""

    used_bytes: int
    capacity_bytes: int

    @property
    def used_mb(self) -> float:
        return round(self.used_bytes / 1024 / 1024, 2)


class KeyValueStore(Protocol):
    """Minimal async interface the scheduler and content cache rely on."""

    async def get(self, key: str) -> Optional[Any]: ...

    async def set(self, key: str, value: Any) -> bool: ...

    async def has(self, key: str) -> bool: ...

    async def remove(self, key: str) -> bool: ...


def _entry_size(key: str, serialized: str) -> int:
    # Browser storage quotas count UTF-16 encoded bytes.
    return len(key.encode("utf-16-le")) + len(serialized.encode("utf-16-le"))


class SQLKeyValueStore:
    """Store JSON documents in the ``key_value_entries`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        capacity_bytes: int = DEFAULT_CAPACITY_BYTES,
    ) -> None:
        self._session_factory = session_factory
        self._capacity_bytes = capacity_bytes

    @property
    def capacity_bytes(self) -> int:
        return self._capacity_bytes

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded document, or ``None`` when absent or unreadable."""
        try:
            async with self._session_factory() as session:
                entry = await session.get(KeyValueEntry, key)
                if entry is None:
                    return None
                raw_value = entry.value
        except SQLAlchemyError:
            LOGGER.exception("Failed to read value for %s; treating it as missing.", key)
            return None

        try:
            return json.loads(raw_value)
        except json.JSONDecodeError:
            LOGGER.warning("Stored value for %s is not valid JSON; treating it as missing.", key)
            return None

    async def set(self, key: str, value: Any) -> bool:
        """Persist ``value`` as JSON under ``key``.

        Raises ``StorageFullError`` when the write would exceed capacity and
        returns ``False`` when the database rejects the write.
        """
        serialized = json.dumps(value, ensure_ascii=False)
        new_size = _entry_size(key, serialized)

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    used = await self._used_bytes(session, exclude_key=key)
                    if used + new_size > self._capacity_bytes:
                        LOGGER.error(
                            "Key-value store is full: %s bytes used, %s requested, capacity %s.",
                            used,
                            new_size,
                            self._capacity_bytes,
                        )
                        raise StorageFullError(
                            f"Writing {key!r} needs {new_size} bytes but only "
                            f"{max(0, self._capacity_bytes - used)} are available."
                        )

                    entry = await session.get(KeyValueEntry, key)
                    if entry is None:
                        session.add(KeyValueEntry(key=key, value=serialized, size_bytes=new_size))
                    else:
                        entry.value = serialized
                        entry.size_bytes = new_size
        except SQLAlchemyError:
            LOGGER.exception("Failed to store value for %s.", key)
            return False
        return True

    async def has(self, key: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(select(KeyValueEntry.key).where(KeyValueEntry.key == key))
            return result.scalar_one_or_none() is not None

    async def remove(self, key: str) -> bool:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key == key))
        except SQLAlchemyError:
            LOGGER.exception("Failed to remove value for %s.", key)
            return False
        return True

    async def clear_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``; return the count."""
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    select(KeyValueEntry.key).where(KeyValueEntry.key.startswith(prefix, autoescape=True))
                )
                keys = list(result.scalars())
                if keys:
                    await session.execute(delete(KeyValueEntry).where(KeyValueEntry.key.in_(keys)))
        return len(keys)

    async def get_storage_info(self) -> StorageInfo:
        async with self._session_factory() as session:
            used = await self._used_bytes(session)
        return StorageInfo(used_bytes=used, capacity_bytes=self._capacity_bytes)

    @staticmethod
    async def _used_bytes(session: AsyncSession, exclude_key: Optional[str] = None) -> int:
        stmt = select(func.coalesce(func.sum(KeyValueEntry.size_bytes), 0))
        if exclude_key is not None:
            stmt = stmt.where(KeyValueEntry.key != exclude_key)
        result = await session.execute(stmt)
        return int(result.scalar_one())
