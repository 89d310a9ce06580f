"""Generation job schema, job handles and progress updates."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobState(str, Enum):
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.SUCCEEDED, JobState.FAILED, JobState.CANCELED)


class JobKind(str, Enum):
    AUDIO = "audio"
    VIDEO = "video"
    IMAGE = "image"
    TRANSCRIPT = "transcript"


class ProviderId(str, Enum):
    REPLICATE = "replicate"
    FAL = "fal"
    HUGGINGFACE = "huggingface"
    ELEVENLABS = "elevenlabs"
    GOOGLE = "google"


class VideoSettings(BaseModel):
    duration: int = 8
    resolution: Literal["720p", "1080p", "4K"] = "1080p"
    style: str = "professional"


class GenerationRequest(BaseModel):
    """One generation request, translated by an adapter into exactly one outbound call."""

    text: str
    provider: ProviderId = ProviderId.REPLICATE
    kind: JobKind = JobKind.VIDEO
    model: str | None = None
    reference_audio_url: str | None = None
    reference_image_url: str | None = None
    settings: VideoSettings | None = None
    voice_id: str | None = None
    language: str | None = None
    # Raw media for transcription (audio bytes)
    audio_bytes: bytes | None = Field(default=None, exclude=True, repr=False)


class JobHandle(BaseModel):
    """Opaque handle returned at job creation.

    ``immediate`` means ``id`` is already the final artifact (URL or data URI).
    """

    id: str
    immediate: bool = False
    provider: ProviderId = ProviderId.REPLICATE
    kind: JobKind = JobKind.VIDEO
    model: str | None = None

    @classmethod
    def from_raw(
        cls,
        raw: str,
        provider: ProviderId,
        kind: JobKind,
        model: str | None = None,
    ) -> JobHandle:
        return cls(id=raw, immediate=is_artifact_ref(raw), provider=provider, kind=kind, model=model)


class GenerationJob(BaseModel):
    """Canonical view of a provider job, normalized from any provider's status vocabulary."""

    id: str
    provider: ProviderId = ProviderId.REPLICATE
    kind: JobKind = JobKind.VIDEO
    state: JobState = JobState.STARTING
    progress: int = Field(default=0, ge=0, le=100)
    output: str | None = None
    error: str | None = None
    error_code: str | None = None
    logs: str | None = None
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _output_xor_error(self) -> GenerationJob:
        if self.output is not None and self.error is not None:
            raise ValueError("a job cannot carry both output and error")
        if self.output is not None and self.state != JobState.SUCCEEDED:
            raise ValueError("output is only set on succeeded jobs")
        if self.error is not None and self.state not in (JobState.FAILED, JobState.CANCELED):
            raise ValueError("error is only set on failed or canceled jobs")
        return self

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal


class ProgressUpdate(BaseModel):
    """Payload handed to progress callbacks on every poll tick."""

    state: JobState
    message: str
    progress: int = 0


STATUS_MESSAGES: dict[JobState, str] = {
    JobState.STARTING: "Generation is starting...",
    JobState.PROCESSING: "Generating...",
    JobState.SUCCEEDED: "Ready!",
    JobState.FAILED: "Generation failed",
    JobState.CANCELED: "Generation was canceled",
}


def progress_update_for(job: GenerationJob) -> ProgressUpdate:
    message = STATUS_MESSAGES[job.state]
    if job.error and job.state in (JobState.FAILED, JobState.CANCELED):
        message = job.error
    return ProgressUpdate(state=job.state, message=message, progress=job.progress)


def is_artifact_ref(value: str) -> bool:
    """True when a handle is already a usable artifact (remote URL or data URI)."""
    return value.startswith(("http://", "https://", "data:"))


def succeeded_job(
    output: str,
    provider: ProviderId,
    kind: JobKind,
    job_id: str | None = None,
) -> GenerationJob:
    return GenerationJob(
        id=job_id or _new_job_id(),
        provider=provider,
        kind=kind,
        state=JobState.SUCCEEDED,
        progress=100,
        output=output,
    )


def _new_job_id() -> str:
    return f"job_{uuid.uuid4().hex[:16]}"
