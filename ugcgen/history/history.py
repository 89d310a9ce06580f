"""Video history: newest-first, capped, with favorites."""

from __future__ import annotations

import logging

from ugcgen.history.models import HistoryItem
from ugcgen.history.store import CollectionStore, save_capped

logger = logging.getLogger(__name__)

HISTORY_KEY = "video_history"
MAX_HISTORY_ITEMS = 50


class HistoryTracker:
    """Every mutation re-reads the stored collection, changes it, and writes the whole array back."""

    def __init__(self, store: CollectionStore, max_items: int = MAX_HISTORY_ITEMS, key: str = HISTORY_KEY):
        self._store = store
        self.max_items = max_items
        self.key = key

    def _load(self) -> list[HistoryItem]:
        items: list[HistoryItem] = []
        for raw in self._store.read(self.key):
            try:
                items.append(HistoryItem.model_validate(raw))
            except ValueError as e:
                logger.warning("Skipping malformed history entry: %s", e)
        return sorted(items, key=lambda i: i.created_at, reverse=True)

    def _save(self, items: list[HistoryItem]) -> bool:
        return save_capped(
            self._store, self.key, [i.model_dump(mode="json") for i in items], self.max_items
        )

    def append(self, item: HistoryItem) -> HistoryItem:
        """Prepend ``item``; entries beyond the cap are evicted oldest first."""
        items = [item, *(i for i in self._load() if i.id != item.id)]
        items.sort(key=lambda i: i.created_at, reverse=True)
        if not self._save(items):
            logger.error("History entry %s was not saved", item.id)
        return item

    def toggle_favorite(self, item_id: str) -> bool:
        items = self._load()
        item = next((i for i in items if i.id == item_id), None)
        if item is None:
            return False
        item.is_favorite = not item.is_favorite
        if not self._save(items):
            return False
        return item.is_favorite

    def remove(self, item_id: str) -> bool:
        items = self._load()
        kept = [i for i in items if i.id != item_id]
        if len(kept) == len(items):
            return False
        return self._save(kept)

    def get(self, item_id: str) -> HistoryItem | None:
        return next((i for i in self._load() if i.id == item_id), None)

    def list_all(self) -> list[HistoryItem]:
        return self._load()

    def list_favorites(self) -> list[HistoryItem]:
        return [i for i in self._load() if i.is_favorite]

    def clear(self) -> None:
        self._store.remove(self.key)
