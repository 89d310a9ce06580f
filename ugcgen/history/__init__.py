"""Persisted history, batch jobs and collections."""

from ugcgen.config import Settings, get_settings
from ugcgen.history.batch import BatchTracker
from ugcgen.history.collections import CollectionTracker
from ugcgen.history.history import HistoryTracker
from ugcgen.history.models import (
    BatchItem,
    BatchItemState,
    BatchJob,
    BatchState,
    HistoryItem,
    VideoCollection,
)
from ugcgen.history.store import (
    CollectionStore,
    FileCollectionStore,
    InMemoryCollectionStore,
    StorageFullError,
)

_store: CollectionStore | None = None


def get_collection_store(settings: Settings | None = None) -> CollectionStore:
    """Return the singleton file store under the configured data directory."""
    global _store
    if _store is None:
        settings = settings or get_settings()
        _store = FileCollectionStore(settings.storage_dir, max_bytes=settings.ugc_storage_max_bytes)
    return _store


def get_history_tracker(settings: Settings | None = None) -> HistoryTracker:
    settings = settings or get_settings()
    return HistoryTracker(get_collection_store(settings), max_items=settings.ugc_history_max_items)


def get_batch_tracker(settings: Settings | None = None) -> BatchTracker:
    settings = settings or get_settings()
    return BatchTracker(get_collection_store(settings), max_jobs=settings.ugc_batch_max_jobs)


def get_collection_tracker(settings: Settings | None = None) -> CollectionTracker:
    settings = settings or get_settings()
    return CollectionTracker(get_collection_store(settings), max_collections=settings.ugc_collections_max)


__all__ = [
    "BatchItem",
    "BatchItemState",
    "BatchJob",
    "BatchState",
    "BatchTracker",
    "CollectionStore",
    "CollectionTracker",
    "FileCollectionStore",
    "HistoryItem",
    "HistoryTracker",
    "InMemoryCollectionStore",
    "StorageFullError",
    "VideoCollection",
    "get_batch_tracker",
    "get_collection_store",
    "get_collection_tracker",
    "get_history_tracker",
]
