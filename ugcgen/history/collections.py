"""Named video collections (folders) referencing history items by id."""

from __future__ import annotations

import logging

from ugcgen.history.models import HistoryItem, VideoCollection
from ugcgen.history.store import CollectionStore, save_capped
from ugcgen.jobs.models import utcnow

logger = logging.getLogger(__name__)

COLLECTIONS_KEY = "video_collections"
MAX_COLLECTIONS = 20

_UPDATABLE = {"name", "description", "color", "icon", "video_ids"}


class CollectionTracker:
    def __init__(self, store: CollectionStore, max_collections: int = MAX_COLLECTIONS, key: str = COLLECTIONS_KEY):
        self._store = store
        self.max_collections = max_collections
        self.key = key

    def _load(self) -> list[VideoCollection]:
        collections: list[VideoCollection] = []
        for raw in self._store.read(self.key):
            try:
                collections.append(VideoCollection.model_validate(raw))
            except ValueError as e:
                logger.warning("Skipping malformed collection: %s", e)
        return sorted(collections, key=lambda c: c.updated_at, reverse=True)

    def _save(self, collections: list[VideoCollection]) -> bool:
        # most recently updated first, so the cap drops the stalest
        collections = sorted(collections, key=lambda c: c.updated_at, reverse=True)
        return save_capped(
            self._store, self.key, [c.model_dump(mode="json") for c in collections], self.max_collections
        )

    def create(
        self,
        name: str,
        description: str | None = None,
        color: str | None = None,
        icon: str | None = None,
    ) -> VideoCollection:
        name = name.strip()
        if not name:
            raise ValueError("collection name is required")
        collection = VideoCollection(name=name, description=description)
        if color:
            collection.color = color
        if icon:
            collection.icon = icon
        self._save([collection, *self._load()])
        return collection

    def get(self, collection_id: str) -> VideoCollection | None:
        return next((c for c in self._load() if c.id == collection_id), None)

    def list_all(self) -> list[VideoCollection]:
        return self._load()

    def update(self, collection_id: str, **changes: object) -> bool:
        unknown = set(changes) - _UPDATABLE
        if unknown:
            raise ValueError(f"cannot update collection fields: {', '.join(sorted(unknown))}")
        collections = self._load()
        for n, c in enumerate(collections):
            if c.id == collection_id:
                data = {**c.model_dump(), **changes, "updated_at": utcnow()}
                collections[n] = VideoCollection.model_validate(data)
                return self._save(collections)
        return False

    def delete(self, collection_id: str) -> bool:
        collections = self._load()
        kept = [c for c in collections if c.id != collection_id]
        if len(kept) == len(collections):
            return False
        return self._save(kept)

    def add_video(self, collection_id: str, video_id: str) -> bool:
        collections = self._load()
        collection = next((c for c in collections if c.id == collection_id), None)
        if collection is None:
            return False
        if video_id not in collection.video_ids:
            collection.video_ids.append(video_id)
            collection.updated_at = utcnow()
            return self._save(collections)
        return True

    def remove_video(self, collection_id: str, video_id: str) -> bool:
        collections = self._load()
        collection = next((c for c in collections if c.id == collection_id), None)
        if collection is None:
            return False
        collection.video_ids = [v for v in collection.video_ids if v != video_id]
        collection.updated_at = utcnow()
        return self._save(collections)

    def videos_in(self, collection_id: str, videos: list[HistoryItem]) -> list[HistoryItem]:
        collection = self.get(collection_id)
        if collection is None:
            return []
        wanted = set(collection.video_ids)
        return [v for v in videos if v.id in wanted]
