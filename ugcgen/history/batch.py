"""Batch job tracking. Item patches recompute the job's aggregates; nothing else sets them."""

from __future__ import annotations

import logging
from typing import Any

from ugcgen.history.models import BatchItem, BatchItemState, BatchJob
from ugcgen.history.store import CollectionStore, save_capped
from ugcgen.jobs.models import utcnow

logger = logging.getLogger(__name__)

BATCH_KEY = "batch_jobs"
MAX_BATCH_JOBS = 10

_PATCHABLE = {"state", "progress", "error", "artifact_url", "audio_url", "job_id"}


class BatchTracker:
    def __init__(self, store: CollectionStore, max_jobs: int = MAX_BATCH_JOBS, key: str = BATCH_KEY):
        self._store = store
        self.max_jobs = max_jobs
        self.key = key

    def _load(self) -> list[BatchJob]:
        jobs: list[BatchJob] = []
        for raw in self._store.read(self.key):
            try:
                jobs.append(BatchJob.model_validate(raw))
            except ValueError as e:
                logger.warning("Skipping malformed batch job: %s", e)
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def _save(self, jobs: list[BatchJob]) -> bool:
        return save_capped(self._store, self.key, [j.model_dump(mode="json") for j in jobs], self.max_jobs)

    def create(self, texts: list[str], provider: str | None = None) -> BatchJob:
        """New batch with one pending item per non-blank text."""
        job = BatchJob(provider=provider)
        job.items = [
            BatchItem(id=f"item_{job.id}_{n}", text=t.strip())
            for n, t in enumerate(t for t in texts if t.strip())
        ]
        self.save(job)
        logger.info("Created batch %s with %d items", job.id, job.total_count)
        return job

    def save(self, job: BatchJob) -> bool:
        """Insert or replace ``job``; the oldest jobs beyond the cap are evicted."""
        jobs = [job, *(j for j in self._load() if j.id != job.id)]
        jobs.sort(key=lambda j: j.created_at, reverse=True)
        return self._save(jobs)

    def get(self, job_id: str) -> BatchJob | None:
        return next((j for j in self._load() if j.id == job_id), None)

    def list_all(self) -> list[BatchJob]:
        return self._load()

    def update_item(self, job_id: str, item_id: str, patch: dict[str, Any]) -> BatchJob | None:
        """Apply ``patch`` to one item and return the job with recomputed aggregates.

        Returns None when the job or the item does not exist.
        """
        unknown = set(patch) - _PATCHABLE
        if unknown:
            raise ValueError(f"cannot patch batch item fields: {', '.join(sorted(unknown))}")
        jobs = self._load()
        job = next((j for j in jobs if j.id == job_id), None)
        if job is None:
            return None
        index = next((n for n, i in enumerate(job.items) if i.id == item_id), None)
        if index is None:
            return None

        updated = BatchItem.model_validate({**job.items[index].model_dump(), **patch})
        if updated.state.is_terminal and updated.completed_at is None:
            updated.completed_at = utcnow()
        job.items[index] = updated
        if not self._save(jobs):
            logger.error("Update to batch %s item %s was not saved", job_id, item_id)
        return job

    def delete(self, job_id: str) -> bool:
        jobs = self._load()
        kept = [j for j in jobs if j.id != job_id]
        if len(kept) == len(jobs):
            return False
        return self._save(kept)

    def clear(self) -> None:
        self._store.remove(self.key)
