"""Tests for collection storage and the video history tracker."""

from datetime import timedelta

import pytest

from ugcgen.history import FileCollectionStore, HistoryItem, HistoryTracker, InMemoryCollectionStore
from ugcgen.history.history import MAX_HISTORY_ITEMS
from ugcgen.history.store import StorageFullError, save_capped
from ugcgen.jobs.models import VideoSettings, utcnow


def _item(n: int, **kwargs) -> HistoryItem:
    return HistoryItem(
        artifact_url=f"https://cdn.example.com/{n}.mp4",
        source_text=f"Script number {n}",
        settings=VideoSettings(),
        provider="replicate",
        **kwargs,
    )


class TestFileCollectionStore:
    def test_missing_key_reads_empty(self, tmp_path):
        assert FileCollectionStore(tmp_path).read("video_history") == []

    def test_write_then_read(self, tmp_path):
        store = FileCollectionStore(tmp_path)
        store.write("video_history", [{"id": "a"}, {"id": "b"}])
        assert store.read("video_history") == [{"id": "a"}, {"id": "b"}]
        assert (tmp_path / "video_history.json").exists()
        assert not list(tmp_path.glob("*.tmp"))

    def test_corrupt_file_reads_empty(self, tmp_path):
        (tmp_path / "video_history.json").write_text("{not json", encoding="utf-8")
        assert FileCollectionStore(tmp_path).read("video_history") == []

    def test_quota_rejects_write_and_keeps_old_content(self, tmp_path):
        store = FileCollectionStore(tmp_path, max_bytes=40)
        store.write("k", [{"id": "a"}])
        with pytest.raises(StorageFullError):
            store.write("k", [{"id": "x" * 100}])
        assert store.read("k") == [{"id": "a"}]

    def test_remove(self, tmp_path):
        store = FileCollectionStore(tmp_path)
        store.write("k", [{"id": "a"}])
        store.remove("k")
        store.remove("k")
        assert store.read("k") == []


class TestSaveCapped:
    def test_caps_items(self):
        store = InMemoryCollectionStore()
        assert save_capped(store, "k", [{"n": i} for i in range(8)], cap=5)
        assert [d["n"] for d in store.read("k")] == [0, 1, 2, 3, 4]

    def test_storage_full_keeps_half(self):
        items = [{"n": i, "pad": "x" * 50} for i in range(10)]
        # room for five entries, not six
        store = InMemoryCollectionStore(max_bytes=420)
        assert save_capped(store, "k", items, cap=10)
        assert [d["n"] for d in store.read("k")] == [0, 1, 2, 3, 4]

    def test_write_dropped_when_half_does_not_fit(self):
        store = InMemoryCollectionStore(max_bytes=10)
        assert not save_capped(store, "k", [{"pad": "x" * 50}] * 4, cap=4)
        assert store.read("k") == []


class TestHistoryTracker:
    def test_append_is_newest_first(self, history):
        first = history.append(_item(1))
        second = history.append(_item(2))
        assert [i.id for i in history.list_all()] == [second.id, first.id]

    def test_cap_evicts_oldest(self, history):
        """After MAX+5 appends exactly MAX remain and they are the most recent ones."""
        added = [history.append(_item(n)) for n in range(MAX_HISTORY_ITEMS + 5)]
        items = history.list_all()
        assert len(items) == MAX_HISTORY_ITEMS
        assert [i.id for i in items] == [i.id for i in reversed(added[5:])]

    def test_timestamps_are_timezone_aware(self, history):
        item = history.append(_item(1))
        assert item.created_at.tzinfo is not None
        assert history.get(item.id).created_at == item.created_at

    def test_older_item_is_sorted_into_place(self, history):
        now = utcnow()
        new = history.append(_item(1, created_at=now))
        old = history.append(_item(2, created_at=now - timedelta(days=1)))
        assert [i.id for i in history.list_all()] == [new.id, old.id]

    def test_toggle_favorite_round_trip(self, history):
        item = history.append(_item(1))
        assert history.toggle_favorite(item.id) is True
        assert history.get(item.id).is_favorite
        assert [i.id for i in history.list_favorites()] == [item.id]
        assert history.toggle_favorite(item.id) is False
        assert history.get(item.id) == item

    def test_toggle_unknown_id_changes_nothing(self, history, store):
        history.append(_item(1))
        before = store.read(history.key)
        assert history.toggle_favorite("video_missing") is False
        assert store.read(history.key) == before

    def test_remove_and_clear(self, history):
        a = history.append(_item(1))
        b = history.append(_item(2))
        assert history.remove(a.id)
        assert not history.remove(a.id)
        assert [i.id for i in history.list_all()] == [b.id]
        history.clear()
        assert history.list_all() == []

    def test_storage_full_shrinks_to_half(self):
        """When the collection no longer fits, the newest half is kept and the new item survives."""
        store = InMemoryCollectionStore()
        tracker = HistoryTracker(store, max_items=10)
        for n in range(9):
            tracker.append(_item(n))
        store._max_bytes = len(store._data[tracker.key].encode("utf-8")) + 10
        newest = tracker.append(_item(99))

        items = tracker.list_all()
        assert len(items) == 5
        assert items[0].id == newest.id

    def test_malformed_entries_are_skipped(self, store):
        store.write("video_history", [{"id": "broken"}, _item(1).model_dump(mode="json")])
        assert len(HistoryTracker(store).list_all()) == 1

    def test_file_backed_tracker_persists(self, tmp_path):
        item = HistoryTracker(FileCollectionStore(tmp_path)).append(_item(1))
        assert HistoryTracker(FileCollectionStore(tmp_path)).get(item.id) == item
