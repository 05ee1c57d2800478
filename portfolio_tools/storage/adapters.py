"""
Domain adapters over the keyed object cache.

Each adapter owns one ``(db_name, store_name)`` pair and converts between
its domain dataclass and the generic StoredRecord.
"""

import sqlite3
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

from shared.logging import get_logger

from .errors import StorageError, StorageUnavailable
from .eviction import DEFAULT_MAX_AGE_MS, DEFAULT_MAX_BYTES, LAST_MODIFIED_KEY, EvictingStore, EvictionStats
from .gateway import READWRITE, KeyedStore
from .records import StoredRecord, now_ms

T = TypeVar("T")

logger = get_logger(__name__)


@dataclass
class ExtractedColor:
    hex: str
    rgb: List[int]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractedColor":
        return cls(hex=data["hex"], rgb=[int(c) for c in data["rgb"]])


@dataclass
class BackgroundRemovalJob:
    id: str
    file_name: str
    source_data_url: str
    result_image: bytes
    created_at: int = 0


@dataclass
class StoredPalette:
    id: str
    file_name: str
    image: bytes
    palette: List[ExtractedColor]
    created_at: int = 0


@dataclass
class DesignVisual:
    stage: str
    svg: str


@dataclass
class StoredDesign:
    id: str
    project_name: str
    description: str
    guide_text: str
    visuals: List[DesignVisual] = field(default_factory=list)
    created_at: int = 0


@dataclass
class CachedAnalysis:
    file_path: str
    file_name: str
    result: Dict[str, Any]
    last_modified: int
    cached_at: int
    thumbnail: Optional[str] = None


@dataclass
class ChatMessage:
    id: str
    sender: str
    text: str


class RecordAdapter(Generic[T]):
    """Base adapter: fixed store identity plus to/from record conversion."""

    db_name: str = ""
    store_name: str = ""
    version: int = 1

    def __init__(
        self,
        root_dir: Optional[Union[str, Path]] = None,
        quota_bytes: Optional[int] = None,
        clock: Callable[[], int] = now_ms,
        store: Optional[KeyedStore] = None,
    ):
        self.store = store or KeyedStore(
            self.db_name, self.store_name, self.version, root_dir=root_dir, quota_bytes=quota_bytes
        )
        self.clock = clock

    def to_record(self, item: T, created_at: int) -> StoredRecord:
        raise NotImplementedError

    def from_record(self, record: StoredRecord) -> T:
        raise NotImplementedError

    def is_supported(self) -> bool:
        return self.store.is_supported()

    async def save(self, item: T) -> bool:
        """Persist *item*; False when embedded storage is unavailable."""
        record = self.to_record(item, created_at=self.clock())
        try:
            await self.store.run_transaction(READWRITE, lambda table: table.put(record))
        except StorageUnavailable:
            return False
        return True

    async def load_all(self) -> List[T]:
        return [self.from_record(record) for record in await self.store.get_all()]

    async def delete(self, item_id: str) -> None:
        await self.store.delete_by_id(item_id)

    async def clear(self) -> None:
        await self.store.clear()


class BackgroundRemovalStore(RecordAdapter[BackgroundRemovalJob]):
    db_name = "laundromatzat-background-removal"
    store_name = "processed-images"

    def to_record(self, item: BackgroundRemovalJob, created_at: int) -> StoredRecord:
        return StoredRecord(
            id=item.id,
            label=item.file_name,
            created_at=created_at,
            payload=item.result_image,
            meta={"source_data_url": item.source_data_url},
        )

    def from_record(self, record: StoredRecord) -> BackgroundRemovalJob:
        return BackgroundRemovalJob(
            id=record.id,
            file_name=record.label,
            source_data_url=record.meta.get("source_data_url", ""),
            result_image=record.payload,
            created_at=record.created_at,
        )


class ColorPaletteStore(RecordAdapter[StoredPalette]):
    db_name = "laundromatzat-color-palette"
    store_name = "palettes"

    def to_record(self, item: StoredPalette, created_at: int) -> StoredRecord:
        return StoredRecord(
            id=item.id,
            label=item.file_name,
            created_at=created_at,
            payload=item.image,
            meta={"palette": [asdict(color) for color in item.palette]},
        )

    def from_record(self, record: StoredRecord) -> StoredPalette:
        return StoredPalette(
            id=record.id,
            file_name=record.label,
            image=record.payload,
            palette=[ExtractedColor.from_dict(c) for c in record.meta.get("palette", [])],
            created_at=record.created_at,
        )


class NylonFabricStore(RecordAdapter[StoredDesign]):
    db_name = "laundromatzat-nylon-fabric"
    store_name = "designs"

    def to_record(self, item: StoredDesign, created_at: int) -> StoredRecord:
        return StoredRecord(
            id=item.id,
            label=item.project_name,
            created_at=created_at,
            payload={
                "description": item.description,
                "guide_text": item.guide_text,
                "visuals": [asdict(v) for v in item.visuals],
            },
        )

    def from_record(self, record: StoredRecord) -> StoredDesign:
        body = record.payload or {}
        return StoredDesign(
            id=record.id,
            project_name=record.label,
            description=body.get("description", ""),
            guide_text=body.get("guide_text", ""),
            visuals=[DesignVisual(**v) for v in body.get("visuals", [])],
            created_at=record.created_at,
        )


class ChatHistoryStore(RecordAdapter[List[ChatMessage]]):
    """The whole conversation is kept as a single record."""

    db_name = "chat-assistant"
    store_name = "messages"
    record_id = "history"

    def to_record(self, item: List[ChatMessage], created_at: int) -> StoredRecord:
        return StoredRecord(
            id=self.record_id,
            label="Chat history",
            created_at=created_at,
            payload=[asdict(m) for m in item],
        )

    def from_record(self, record: StoredRecord) -> List[ChatMessage]:
        return [ChatMessage(**m) for m in record.payload or []]

    async def load(self) -> List[ChatMessage]:
        record = await self.store.get(self.record_id)
        return self.from_record(record) if record is not None else []


class MediaInsightCache:
    """
    Analysis cache keyed by file path, bounded by total size and age.

    Failures are logged and swallowed so a broken cache never blocks an analysis.
    """

    db_name = "laundromatzat-media-insight"
    store_name = "analyses"

    def __init__(
        self,
        root_dir: Optional[Union[str, Path]] = None,
        max_bytes: int = DEFAULT_MAX_BYTES,
        max_age_ms: int = DEFAULT_MAX_AGE_MS,
        clock: Callable[[], int] = now_ms,
        quota_bytes: Optional[int] = None,
    ):
        self.clock = clock
        self.store = EvictingStore(
            KeyedStore(self.db_name, self.store_name, root_dir=root_dir, quota_bytes=quota_bytes),
            max_bytes=max_bytes,
            max_age_ms=max_age_ms,
            clock=clock,
        )

    @staticmethod
    def _from_record(record: StoredRecord) -> CachedAnalysis:
        return CachedAnalysis(
            file_path=record.id,
            file_name=record.label,
            result=record.payload,
            last_modified=record.meta.get(LAST_MODIFIED_KEY, record.created_at),
            cached_at=record.created_at,
            thumbnail=record.meta.get("thumbnail"),
        )

    async def save_analysis(
        self,
        file_path: str,
        file_name: str,
        result: Dict[str, Any],
        thumbnail: Optional[str] = None,
        last_modified: Optional[int] = None,
    ) -> None:
        cached_at = self.clock()
        meta: Dict[str, Any] = {LAST_MODIFIED_KEY: last_modified or cached_at}
        if thumbnail is not None:
            meta["thumbnail"] = thumbnail
        record = StoredRecord(id=file_path, label=file_name, created_at=cached_at, payload=result, meta=meta)
        try:
            await self.store.put(record)
        except (StorageError, sqlite3.Error) as exc:
            logger.error("Failed to save analysis to cache", file_path=file_path, error=str(exc))

    async def get_analysis(self, file_path: str, last_modified: Optional[int] = None) -> Optional[CachedAnalysis]:
        try:
            record = await self.store.get(file_path, last_modified or None)
        except (StorageError, sqlite3.Error) as exc:
            logger.error("Failed to get analysis from cache", file_path=file_path, error=str(exc))
            return None
        return self._from_record(record) if record is not None else None

    async def get_all_cached_analyses(self) -> List[CachedAnalysis]:
        try:
            records = await self.store.get_all()
        except (StorageError, sqlite3.Error) as exc:
            logger.error("Failed to get all cached analyses", error=str(exc))
            return []
        return [self._from_record(record) for record in records]

    async def clear_cache(self) -> None:
        try:
            await self.store.clear()
        except (StorageError, sqlite3.Error) as exc:
            logger.error("Failed to clear cache", error=str(exc))

    async def get_cache_stats(self) -> EvictionStats:
        try:
            return await self.store.stats()
        except (StorageError, sqlite3.Error) as exc:
            logger.error("Failed to get cache stats", error=str(exc))
            return EvictionStats(count=0, size_mb=0.0, oldest_entry=None)
