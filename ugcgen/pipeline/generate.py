"""Text to video: speech synthesis, video job creation, polling, history record."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any

from ugcgen.config import Settings, get_settings
from ugcgen.history import get_history_tracker
from ugcgen.history.history import HistoryTracker
from ugcgen.history.models import HistoryItem
from ugcgen.jobs.models import (
    GenerationJob,
    GenerationRequest,
    JobHandle,
    JobKind,
    JobState,
    ProgressUpdate,
    ProviderId,
    VideoSettings,
)
from ugcgen.jobs.poller import JobPoller, ProgressCallback
from ugcgen.providers import get_adapter
from ugcgen.providers.base import ProviderAdapter
from ugcgen.providers.errors import error_for_code
from ugcgen.providers.registry import require_kind
from ugcgen.providers.huggingface import VIDEO_FALLBACK_MODELS
from ugcgen.providers.retry import Sleep, submit_with_model_fallback, submit_with_retries
from ugcgen.validation import validate_text, validate_video_settings

logger = logging.getLogger(__name__)

STYLE_PROMPTS = {
    "professional": "A professional influencer speaking",
    "friendly": "A friendly and approachable person speaking",
    "energetic": "An energetic and enthusiastic person speaking",
    "calm": "A calm and soothing person speaking",
    "dramatic": "A dramatic and expressive person speaking",
}


def build_video_prompt(text: str, style: str = "professional") -> str:
    return f"{STYLE_PROMPTS.get(style, STYLE_PROMPTS['professional'])}: {text}"


class VideoPipeline:
    """Runs one generation end to end. Each stage is exposed so batch processing can track items."""

    def __init__(
        self,
        audio_adapter: ProviderAdapter,
        video_adapter: ProviderAdapter,
        history: HistoryTracker | None = None,
        settings: Settings | None = None,
        sleep: Sleep = asyncio.sleep,
        poll_options: dict[str, Any] | None = None,
    ):
        self.settings = settings or get_settings()
        self.audio_adapter = audio_adapter
        self.video_adapter = video_adapter
        self.history = history
        self.sleep = sleep
        self._poll_options = {
            "interval": self.settings.ugc_poll_interval_seconds,
            "max_attempts": self.settings.ugc_poll_max_attempts,
            "timeout": self.settings.ugc_poll_timeout_seconds,
            "sleep": sleep,
            **(poll_options or {}),
        }

    @property
    def video_provider(self) -> ProviderId:
        return ProviderId(self.video_adapter.provider_name)

    async def synthesize_speech(self, text: str, voice_id: str | None = None) -> str:
        """Return the narration as an artifact reference."""
        handle = await submit_with_retries(
            self.audio_adapter,
            GenerationRequest(
                text=text,
                provider=ProviderId(self.audio_adapter.provider_name),
                kind=JobKind.AUDIO,
                voice_id=voice_id,
            ),
            max_retries=self.settings.ugc_max_retries,
            default_retry_after=self.settings.ugc_default_retry_after_seconds,
            sleep=self.sleep,
        )
        if handle.immediate:
            return handle.id
        job = await self.poll(handle, self.audio_adapter)
        if job.state != JobState.SUCCEEDED or not job.output:
            raise error_for_code(job.error_code, job.error or "speech synthesis failed")
        return job.output

    async def submit_video(
        self,
        text: str,
        audio_url: str | None,
        settings: VideoSettings,
        model: str | None = None,
    ) -> JobHandle:
        request = GenerationRequest(
            text=build_video_prompt(text, settings.style),
            provider=self.video_provider,
            kind=JobKind.VIDEO,
            model=model,
            reference_audio_url=audio_url,
            settings=settings,
        )
        retry_options = {
            "max_retries": self.settings.ugc_max_retries,
            "default_retry_after": self.settings.ugc_default_retry_after_seconds,
            "sleep": self.sleep,
        }
        if self.video_provider == ProviderId.HUGGINGFACE:
            return await submit_with_model_fallback(
                self.video_adapter, request, VIDEO_FALLBACK_MODELS, **retry_options
            )
        return await submit_with_retries(self.video_adapter, request, **retry_options)

    async def poll(
        self,
        handle: JobHandle,
        adapter: ProviderAdapter | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> GenerationJob:
        adapter = adapter or self.video_adapter

        async def check(job_id: str) -> GenerationJob:
            return await adapter.check_status(job_id, handle.model)

        return await JobPoller(handle, check, on_progress=on_progress, **self._poll_options).run()

    def record(
        self,
        job: GenerationJob,
        text: str,
        settings: VideoSettings,
        audio_url: str | None = None,
        voice_id: str | None = None,
    ) -> HistoryItem | None:
        if self.history is None or job.state != JobState.SUCCEEDED or not job.output:
            return None
        return self.history.append(
            HistoryItem(
                artifact_url=job.output,
                source_text=text,
                settings=settings,
                provider=job.provider.value,
                audio_url=audio_url,
                voice_id=voice_id,
            )
        )

    async def run(
        self,
        text: str,
        voice_id: str | None = None,
        settings: VideoSettings | None = None,
        model: str | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> GenerationJob:
        text = validate_text(text)
        settings = settings or VideoSettings()
        validate_video_settings(settings)

        await _notify(on_progress, ProgressUpdate(state=JobState.STARTING, message="Generating audio...", progress=0))
        audio_url = await self.synthesize_speech(text, voice_id)
        logger.info("Audio ready, starting video generation with %s", self.video_provider.value)

        await _notify(on_progress, ProgressUpdate(state=JobState.STARTING, message="Starting video generation...", progress=10))
        handle = await self.submit_video(text, audio_url, settings, model)
        job = await self.poll(handle, on_progress=on_progress)

        if job.state == JobState.SUCCEEDED:
            self.record(job, text, settings, audio_url=audio_url, voice_id=voice_id)
        else:
            logger.error("Video generation %s ended %s: %s", job.id, job.state.value, job.error)
        return job


async def _notify(callback: ProgressCallback | None, update: ProgressUpdate) -> None:
    if callback is None:
        return
    result = callback(update)
    if inspect.isawaitable(result):
        await result


async def generate_video(
    text: str,
    provider: ProviderId | str = ProviderId.REPLICATE,
    voice_id: str | None = None,
    settings: VideoSettings | None = None,
    model: str | None = None,
    on_progress: ProgressCallback | None = None,
    history: HistoryTracker | None = None,
    app_settings: Settings | None = None,
    speech_provider: ProviderId | str | None = None,
) -> GenerationJob:
    """Generate one UGC video with the configured adapters and record it in history."""
    app_settings = app_settings or get_settings()
    speech = require_kind(speech_provider or app_settings.ugc_speech_provider, JobKind.AUDIO)
    audio_adapter = get_adapter(speech, app_settings)
    video_adapter = get_adapter(provider, app_settings)
    pipeline = VideoPipeline(
        audio_adapter,
        video_adapter,
        history=history or get_history_tracker(app_settings),
        settings=app_settings,
    )
    try:
        return await pipeline.run(text, voice_id=voice_id, settings=settings, model=model, on_progress=on_progress)
    finally:
        await audio_adapter.aclose()
        await video_adapter.aclose()
