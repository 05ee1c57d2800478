"""
Size and age bounded wrapper around a KeyedStore.

Oldest-first eviction by ``created_at``; no access-time tracking.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

from shared.logging import get_logger

from .errors import StorageUnavailable
from .gateway import READONLY, READWRITE, KeyedStore, StoreTable
from .records import StoredRecord, now_ms

DEFAULT_MAX_BYTES = 5 * 1024 * 1024
DEFAULT_MAX_AGE_MS = 30 * 24 * 60 * 60 * 1000

LAST_MODIFIED_KEY = "last_modified"


@dataclass
class EvictionStats:
    count: int
    size_mb: float
    oldest_entry: Optional[int]

    def to_dict(self):
        return {"count": self.count, "size_mb": self.size_mb, "oldest_entry": self.oldest_entry}


class EvictingStore:
    """KeyedStore with a total-size cap and a maximum record age."""

    def __init__(
        self,
        store: KeyedStore,
        max_bytes: int = DEFAULT_MAX_BYTES,
        max_age_ms: int = DEFAULT_MAX_AGE_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.max_bytes = max_bytes
        self.max_age_ms = max_age_ms
        self.clock = clock
        self.logger = get_logger(__name__).bind(db=store.db_name, store=store.store_name)

    def is_supported(self) -> bool:
        return self.store.is_supported()

    async def _prune(self, table: StoreTable) -> List[str]:
        entries = await table.sizes()
        total = sum(size for _, _, size in entries)
        evicted: List[str] = []
        for record_id, _, size in entries:
            if total <= self.max_bytes:
                break
            await table.delete(record_id)
            total -= size
            evicted.append(record_id)
        return evicted

    async def put(self, record: StoredRecord) -> List[str]:
        """
        Write *record* then evict oldest records until the store fits the cap.

        Both steps share one transaction. A record that alone exceeds the cap
        is evicted as well. Returns the evicted ids.
        """
        async def write_and_prune(table: StoreTable) -> List[str]:
            await table.put(record)
            return await self._prune(table)

        try:
            evicted = await self.store.run_transaction(READWRITE, write_and_prune)
        except StorageUnavailable as exc:
            self.logger.debug("Keyed store unavailable, put skipped", id=record.id, error=exc.message)
            return []

        if evicted:
            self.logger.info("Evicted cached records", count=len(evicted), ids=evicted)
        return evicted

    def _is_stale(self, record: StoredRecord, last_modified: Optional[int]) -> bool:
        if self.clock() - record.created_at > self.max_age_ms:
            return True
        if last_modified is None:
            return False
        cached = record.meta.get(LAST_MODIFIED_KEY)
        return cached is not None and last_modified > cached

    async def get(self, record_id: str, last_modified: Optional[int] = None) -> Optional[StoredRecord]:
        """Fetch a record; expired or outdated records are deleted and reported as a miss."""
        async def read_or_expire(table: StoreTable) -> Optional[StoredRecord]:
            record = await table.get(record_id)
            if record is None:
                return None
            if self._is_stale(record, last_modified):
                await table.delete(record_id)
                self.logger.debug("Dropped stale cached record", id=record_id)
                return None
            return record

        try:
            return await self.store.run_transaction(READWRITE, read_or_expire)
        except StorageUnavailable:
            return None

    async def get_all(self) -> List[StoredRecord]:
        return await self.store.get_all()

    async def delete(self, record_id: str) -> None:
        await self.store.delete_by_id(record_id)

    async def clear(self) -> None:
        await self.store.clear()

    async def stats(self) -> EvictionStats:
        try:
            entries = await self.store.run_transaction(READONLY, lambda table: table.sizes())
        except StorageUnavailable:
            entries = []
        total = sum(size for _, _, size in entries)
        return EvictionStats(
            count=len(entries),
            size_mb=total / (1024 * 1024),
            oldest_entry=entries[0][1] if entries else None,
        )
