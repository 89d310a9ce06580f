"""Batch jobs: create, then process in the background one item at a time.

POST /api/batch
  → Stores the batch (all items pending) and returns it immediately.
GET /api/batch/{job_id}
  → Poll for item states and the derived counts.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel, Field

from backend.deps import AdapterFactory, adapter_factory, app_settings, batch_tracker, history_tracker
from ugcgen.config import Settings
from ugcgen.history import BatchJob, BatchTracker, HistoryTracker
from ugcgen.jobs.models import JobKind, ProviderId, VideoSettings
from ugcgen.pipeline import BatchRunner, VideoPipeline
from ugcgen.providers.registry import require_kind
from ugcgen.validation import validate_video_settings

logger = logging.getLogger(__name__)
router = APIRouter()

MAX_BATCH_ITEMS = 50


class BatchCreateRequest(BaseModel):
    texts: list[str] = Field(..., min_length=1)
    provider: ProviderId = ProviderId.REPLICATE
    speech_provider: Optional[ProviderId] = None
    voice_id: Optional[str] = None
    settings: VideoSettings = Field(default_factory=VideoSettings)


async def _run_batch(
    job: BatchJob,
    body: BatchCreateRequest,
    adapters: AdapterFactory,
    tracker: BatchTracker,
    history: HistoryTracker,
    settings: Settings,
) -> None:
    """Background task: exceptions are logged here since nobody awaits the result."""
    audio = adapters((body.speech_provider or ProviderId.ELEVENLABS).value)
    video = adapters(body.provider.value)
    try:
        pipeline = VideoPipeline(audio, video, history=history, settings=settings)
        await BatchRunner(pipeline, tracker).process(job, voice_id=body.voice_id, settings=body.settings)
    except Exception:
        logger.exception("Batch %s crashed", job.id)
    finally:
        await audio.aclose()
        await video.aclose()


@router.post("/batch", response_model=BatchJob, status_code=202)
async def create_batch(
    body: BatchCreateRequest,
    background_tasks: BackgroundTasks,
    adapters: AdapterFactory = Depends(adapter_factory),
    tracker: BatchTracker = Depends(batch_tracker),
    history: HistoryTracker = Depends(history_tracker),
    settings: Settings = Depends(app_settings),
):
    validate_video_settings(body.settings)
    body.speech_provider = require_kind(body.speech_provider or settings.ugc_speech_provider, JobKind.AUDIO)
    texts = [t for t in body.texts if t.strip()]
    if not texts:
        raise HTTPException(status_code=400, detail="At least one non-empty text is required")
    if len(texts) > MAX_BATCH_ITEMS:
        raise HTTPException(status_code=400, detail=f"A batch can hold at most {MAX_BATCH_ITEMS} texts")

    job = tracker.create(texts, provider=body.provider.value)
    background_tasks.add_task(_run_batch, job, body, adapters, tracker, history, settings)
    return job


@router.get("/batch", response_model=list[BatchJob])
async def list_batches(tracker: BatchTracker = Depends(batch_tracker)):
    return tracker.list_all()


@router.get("/batch/{job_id}", response_model=BatchJob)
async def get_batch(job_id: str, tracker: BatchTracker = Depends(batch_tracker)):
    job = tracker.get(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Batch not found: {job_id}")
    return job


@router.delete("/batch/{job_id}")
async def delete_batch(job_id: str, tracker: BatchTracker = Depends(batch_tracker)):
    if not tracker.delete(job_id):
        raise HTTPException(status_code=404, detail=f"Batch not found: {job_id}")
    return {"success": True}
