"""Generation API: speech, video, image and transcription jobs.

POST /api/generate-video
  → Creates one provider job and returns its handle immediately
    ({prediction_id} to poll, or the finished output for synchronous providers).

GET /api/video-status
  → One status query, normalized to {status, output?, error?, progress}.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel

from backend.deps import AdapterFactory, adapter_factory, app_settings
from ugcgen.config import Settings
from ugcgen.jobs.models import GenerationJob, GenerationRequest, JobHandle, JobKind, JobState, ProviderId, VideoSettings
from ugcgen.jobs.poller import JobPoller
from ugcgen.providers import (
    ProviderAdapter,
    ProviderError,
    ValidationError,
    error_for_code,
    submit_with_model_fallback,
    submit_with_retries,
)
from ugcgen.providers.elevenlabs import ElevenLabsAdapter
from ugcgen.providers.google_tts import GoogleTTSAdapter
from ugcgen.providers.http import decode_data_uri
from ugcgen.providers.huggingface import IMAGE_FALLBACK_MODELS, VIDEO_FALLBACK_MODELS
from ugcgen.providers.registry import PROVIDERS, get_provider_config, is_provider_available, require_kind
from ugcgen.validation import validate_video_settings

logger = logging.getLogger(__name__)
router = APIRouter()


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class AudioRequest(BaseModel):
    text: str
    provider: ProviderId = ProviderId.ELEVENLABS
    voice_id: Optional[str] = None
    language: Optional[str] = None


class AudioResponse(BaseModel):
    success: bool = True
    audio_url: str


class VideoRequest(BaseModel):
    prompt: str
    audio_url: Optional[str] = None
    image_url: Optional[str] = None
    provider: ProviderId = ProviderId.REPLICATE
    model: Optional[str] = None
    settings: Optional[VideoSettings] = None


class ImageRequest(BaseModel):
    prompt: str
    provider: ProviderId = ProviderId.REPLICATE
    model: Optional[str] = None


class JobResponse(BaseModel):
    """Shared envelope: {success, status?, output?, error?, progress?}."""

    success: bool = True
    id: Optional[str] = None
    prediction_id: Optional[str] = None
    status: Optional[JobState] = None
    output: Optional[str] = None
    error: Optional[str] = None
    progress: Optional[int] = None
    logs: Optional[str] = None
    model: Optional[str] = None


class TranscriptResponse(BaseModel):
    success: bool = True
    text: str
    provider: ProviderId


class ProviderInfo(BaseModel):
    provider: ProviderId
    name: str
    description: str
    requires_api_key: bool
    api_key_env: str
    kinds: list[JobKind]
    supports_audio: bool
    audio_support_note: str = ""
    available: bool


class CheckProviderResponse(BaseModel):
    success: bool = True
    provider: ProviderId
    available: bool
    message: str = ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _job_response(job: GenerationJob, model: Optional[str] = None) -> JobResponse:
    return JobResponse(
        success=job.state not in (JobState.FAILED, JobState.CANCELED),
        id=job.id,
        status=job.state,
        output=job.output,
        error=job.error,
        progress=job.progress,
        logs=job.logs,
        model=model,
    )


def _handle_response(handle: JobHandle) -> JobResponse:
    if handle.immediate:
        return JobResponse(status=JobState.SUCCEEDED, output=handle.id, progress=100, model=handle.model)
    return JobResponse(
        id=handle.id,
        prediction_id=handle.id,
        status=JobState.STARTING,
        progress=0,
        model=handle.model,
    )


async def _submit(adapter: ProviderAdapter, request: GenerationRequest, settings: Settings, fallbacks: list[str]) -> JobHandle:
    options = {
        "max_retries": settings.ugc_max_retries,
        "default_retry_after": settings.ugc_default_retry_after_seconds,
    }
    if fallbacks and not request.model:
        return await submit_with_model_fallback(adapter, request, fallbacks, **options)
    return await submit_with_retries(adapter, request, **options)


async def _run_to_completion(adapter: ProviderAdapter, handle: JobHandle, settings: Settings) -> GenerationJob:
    async def check(job_id: str) -> GenerationJob:
        return await adapter.check_status(job_id, handle.model)

    return await JobPoller(
        handle,
        check,
        interval=settings.ugc_poll_interval_seconds,
        max_attempts=settings.ugc_poll_max_attempts,
        timeout=settings.ugc_poll_timeout_seconds,
    ).run()


def transcript_text(output: str) -> str:
    if output.startswith("data:"):
        return decode_data_uri(output).decode("utf-8", errors="replace")
    return output


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.post("/generate-audio", response_model=AudioResponse)
async def generate_audio(
    body: AudioRequest,
    adapters: AdapterFactory = Depends(adapter_factory),
    settings: Settings = Depends(app_settings),
):
    """Text to speech (ElevenLabs or Google). The audio comes back as a data URI."""
    provider = require_kind(body.provider, JobKind.AUDIO)
    adapter = adapters(provider.value)
    try:
        handle = await _submit(
            adapter,
            GenerationRequest(
                text=body.text,
                provider=provider,
                kind=JobKind.AUDIO,
                voice_id=body.voice_id,
                language=body.language,
            ),
            settings,
            [],
        )
    finally:
        await adapter.aclose()
    return AudioResponse(audio_url=handle.id)


@router.post("/generate-video", response_model=JobResponse)
async def generate_video(
    body: VideoRequest,
    adapters: AdapterFactory = Depends(adapter_factory),
    settings: Settings = Depends(app_settings),
):
    """Create a video job. Poll GET /api/video-status with the returned prediction_id."""
    validate_video_settings(body.settings)
    adapter = adapters(body.provider.value)
    request = GenerationRequest(
        text=body.prompt,
        provider=body.provider,
        kind=JobKind.VIDEO,
        model=body.model,
        reference_audio_url=body.audio_url,
        reference_image_url=body.image_url,
        settings=body.settings,
    )
    fallbacks = VIDEO_FALLBACK_MODELS if body.provider == ProviderId.HUGGINGFACE else []
    try:
        handle = await _submit(adapter, request, settings, fallbacks)
    finally:
        await adapter.aclose()
    logger.info("Video job %s created on %s", handle.id[:40], body.provider.value)
    return _handle_response(handle)


@router.get("/video-status", response_model=JobResponse)
async def video_status(
    prediction_id: str = Query(..., min_length=1),
    provider: ProviderId = ProviderId.REPLICATE,
    model: Optional[str] = None,
    adapters: AdapterFactory = Depends(adapter_factory),
):
    """One status query for a job created by /generate-video or /generate-image."""
    adapter = adapters(provider.value)
    try:
        job = await adapter.check_status(prediction_id, model)
    finally:
        await adapter.aclose()
    return _job_response(job, model)


@router.post("/generate-image", response_model=JobResponse)
async def generate_image(
    body: ImageRequest,
    adapters: AdapterFactory = Depends(adapter_factory),
    settings: Settings = Depends(app_settings),
):
    """Create an image and wait for it; image models finish in seconds."""
    adapter = adapters(body.provider.value)
    request = GenerationRequest(text=body.prompt, provider=body.provider, kind=JobKind.IMAGE, model=body.model)
    fallbacks = IMAGE_FALLBACK_MODELS if body.provider == ProviderId.HUGGINGFACE else []
    try:
        handle = await _submit(adapter, request, settings, fallbacks)
        job = await _run_to_completion(adapter, handle, settings)
    finally:
        await adapter.aclose()
    return _job_response(job, handle.model)


@router.post("/transcribe", response_model=TranscriptResponse)
async def transcribe(
    file: Optional[UploadFile] = File(None),
    audio_url: Optional[str] = Form(None),
    provider: ProviderId = Form(ProviderId.HUGGINGFACE),
    language: Optional[str] = Form(None),
    adapters: AdapterFactory = Depends(adapter_factory),
    settings: Settings = Depends(app_settings),
):
    """Speech to text from an uploaded file or an audio URL (Whisper)."""
    if provider not in (ProviderId.REPLICATE, ProviderId.HUGGINGFACE):
        raise ValidationError(f"Transcription is not supported by {provider.value}")
    audio_bytes = await file.read() if file is not None else None
    request = GenerationRequest(
        text="",
        provider=provider,
        kind=JobKind.TRANSCRIPT,
        reference_audio_url=audio_url,
        audio_bytes=audio_bytes,
        language=language,
    )
    adapter = adapters(provider.value)
    try:
        handle = await _submit(adapter, request, settings, [])
        job = await _run_to_completion(adapter, handle, settings)
    finally:
        await adapter.aclose()
    if job.state != JobState.SUCCEEDED:
        raise error_for_code(job.error_code, job.error or "Transcription failed")
    if not job.output:
        raise ProviderError("Transcription returned no text", provider=provider.value)
    return TranscriptResponse(text=transcript_text(job.output), provider=provider)


@router.get("/voices")
async def voices(
    provider: ProviderId = ProviderId.ELEVENLABS,
    language: Optional[str] = None,
    adapters: AdapterFactory = Depends(adapter_factory),
):
    """Voice catalog of a speech provider; ``language`` filters Google voices."""
    require_kind(provider, JobKind.AUDIO)
    adapter = adapters(provider.value)
    try:
        if isinstance(adapter, GoogleTTSAdapter):
            result = await adapter.list_voices(language)
        elif isinstance(adapter, ElevenLabsAdapter):
            result = await adapter.list_voices()
        else:
            raise ValidationError(f"Voice listing is not available for {provider.value}")
    finally:
        await adapter.aclose()
    return {"success": True, "voices": [v.model_dump() for v in result]}


@router.get("/providers", response_model=list[ProviderInfo])
async def providers(settings: Settings = Depends(app_settings)):
    return [
        ProviderInfo(
            **p.model_dump(exclude={"settings_field"}),
            available=is_provider_available(p.provider, settings),
        )
        for p in PROVIDERS
    ]


@router.get("/check-provider", response_model=CheckProviderResponse)
async def check_provider(
    provider: ProviderId = Query(...),
    settings: Settings = Depends(app_settings),
):
    config = get_provider_config(provider)
    available = is_provider_available(provider, settings)
    message = "" if available else f"{config.api_key_env} is not set or invalid"
    return CheckProviderResponse(provider=provider, available=available, message=message)