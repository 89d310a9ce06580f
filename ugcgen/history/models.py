"""Persisted entities: history items, batch jobs and video collections."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from ugcgen.jobs.models import VideoSettings, utcnow


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:16]}"


class HistoryItem(BaseModel):
    """A finished generation. Created once a job succeeds; only favorite and deletion mutate it."""

    id: str = Field(default_factory=lambda: _new_id("video"))
    created_at: datetime = Field(default_factory=utcnow)
    artifact_url: str
    source_text: str
    settings: VideoSettings | None = None
    is_favorite: bool = False
    thumbnail: str | None = None
    provider: str | None = None
    audio_url: str | None = None
    voice_id: str | None = None
    voice_name: str | None = None


class BatchItemState(str, Enum):
    PENDING = "pending"
    GENERATING_AUDIO = "generating-audio"
    GENERATING_VIDEO = "generating-video"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (BatchItemState.COMPLETED, BatchItemState.ERROR)


class BatchState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


class BatchItem(BaseModel):
    id: str
    text: str
    state: BatchItemState = BatchItemState.PENDING
    progress: int = Field(default=0, ge=0, le=100)
    error: str | None = None
    artifact_url: str | None = None
    audio_url: str | None = None
    job_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None


class BatchJob(BaseModel):
    """A batch of prompts. Counts and overall state are derived from ``items`` on every read."""

    id: str = Field(default_factory=lambda: _new_id("batch"))
    items: list[BatchItem] = Field(default_factory=list)
    provider: str | None = None
    created_at: datetime = Field(default_factory=utcnow)

    @computed_field
    @property
    def total_count(self) -> int:
        return len(self.items)

    @computed_field
    @property
    def completed_count(self) -> int:
        return sum(1 for i in self.items if i.state == BatchItemState.COMPLETED)

    @computed_field
    @property
    def failed_count(self) -> int:
        return sum(1 for i in self.items if i.state == BatchItemState.ERROR)

    @computed_field
    @property
    def state(self) -> BatchState:
        if self.completed_count + self.failed_count == self.total_count:
            return BatchState.COMPLETED
        if all(i.state == BatchItemState.PENDING for i in self.items):
            return BatchState.PENDING
        return BatchState.PROCESSING

    @computed_field
    @property
    def completed_at(self) -> datetime | None:
        if self.state != BatchState.COMPLETED:
            return None
        finished = [i.completed_at for i in self.items if i.completed_at]
        return max(finished) if finished else self.created_at

    def get_item(self, item_id: str) -> BatchItem | None:
        return next((i for i in self.items if i.id == item_id), None)


class VideoCollection(BaseModel):
    id: str = Field(default_factory=lambda: _new_id("collection"))
    name: str
    description: str | None = None
    color: str = "purple"
    icon: str = "📁"
    video_ids: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
