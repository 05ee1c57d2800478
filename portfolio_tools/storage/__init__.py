"""
Keyed object cache: embedded SQLite stores, domain adapters and eviction.
"""

from .adapters import (
    BackgroundRemovalJob,
    BackgroundRemovalStore,
    CachedAnalysis,
    ChatHistoryStore,
    ChatMessage,
    ColorPaletteStore,
    DesignVisual,
    ExtractedColor,
    MediaInsightCache,
    NylonFabricStore,
    RecordAdapter,
    StoredDesign,
    StoredPalette,
)
from .errors import StorageError, StorageUnavailable, StorageVersionError, StorageWriteFailed
from .eviction import EvictingStore, EvictionStats
from .gateway import READONLY, READWRITE, KeyedStore, StoreTable
from .records import StoredRecord, now_ms

__all__ = [
    "BackgroundRemovalJob",
    "BackgroundRemovalStore",
    "CachedAnalysis",
    "ChatHistoryStore",
    "ChatMessage",
    "ColorPaletteStore",
    "DesignVisual",
    "EvictingStore",
    "EvictionStats",
    "ExtractedColor",
    "KeyedStore",
    "MediaInsightCache",
    "NylonFabricStore",
    "READONLY",
    "READWRITE",
    "RecordAdapter",
    "StorageError",
    "StorageUnavailable",
    "StorageVersionError",
    "StorageWriteFailed",
    "StoreTable",
    "StoredDesign",
    "StoredPalette",
    "StoredRecord",
    "now_ms",
]
