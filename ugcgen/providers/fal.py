"""Fal.ai queue API integration for video and image generation."""

from __future__ import annotations

import logging
from typing import Any

from ugcgen.jobs.models import (
    GenerationJob,
    GenerationRequest,
    JobHandle,
    JobKind,
    JobState,
    ProviderId,
    is_artifact_ref,
    succeeded_job,
)
from ugcgen.providers.errors import NotFoundError, ProviderError
from ugcgen.providers.http import HTTPProviderAdapter
from ugcgen.validation import validate_generation_request

logger = logging.getLogger(__name__)

FAL_QUEUE_URL = "https://queue.fal.run"

# Old ids that now point at a text-to-video model
LEGACY_MODEL_MAP = {
    "fal-ai/flux/dev": "kling-video/v2.5-turbo/pro/text-to-video",
    "fal-ai/stable-video-diffusion": "pixverse/v5/text-to-video",
    "fal-ai/animate-diff": "pixverse/v5/text-to-video",
    "fal-ai/zeroscope-v2": "pixverse/v5/text-to-video",
    "fal-ai/kling-v1": "kling-video/v2.5-turbo/pro/text-to-video",
}

RESOLUTION_MAP = {
    "720p": "1280x720",
    "1080p": "1920x1080",
    "4K": "3840x2160",
}

_QUEUE_STATUS_MAP = {
    "IN_QUEUE": JobState.STARTING,
    "IN_PROGRESS": JobState.PROCESSING,
    "COMPLETED": JobState.SUCCEEDED,
    "FAILED": JobState.FAILED,
    "ERROR": JobState.FAILED,
    "CANCELLED": JobState.CANCELED,
    "CANCELED": JobState.CANCELED,
}


class FalAdapter(HTTPProviderAdapter):
    """Fal.ai queue: submit returns a request id, status is read per model app."""

    provider_name = "fal"

    def __init__(
        self,
        api_key: str | None = None,
        video_model: str = "kling-video/v2.5-turbo/pro/text-to-video",
        image_model: str = "fal-ai/flux/schnell",
        **kwargs: Any,
    ):
        super().__init__(api_key=api_key, **kwargs)
        self._models = {JobKind.VIDEO: video_model, JobKind.IMAGE: image_model}

    def _headers(self) -> dict[str, str]:
        key = self._require_key("FAL_API_KEY")
        return {"Authorization": f"Key {key}", "Content-Type": "application/json"}

    def resolve_model(self, kind: JobKind, model: str | None) -> str:
        model_id = model or self._models[kind]
        if kind == JobKind.VIDEO:
            model_id = LEGACY_MODEL_MAP.get(model_id, model_id)
        return model_id

    async def submit(self, request: GenerationRequest) -> JobHandle:
        request = validate_generation_request(request)
        if request.kind not in self._models:
            raise NotFoundError(
                f"{request.kind.value} generation is not supported",
                provider=self.provider_name,
                remedy="Choose a different provider",
            )
        headers = self._headers()
        model_id = self.resolve_model(request.kind, request.model)

        response = await self._request(
            "POST", f"{FAL_QUEUE_URL}/{model_id}", headers=headers, json=self._build_input(request)
        )
        data = response.json()

        artifact = _extract_artifact(data)
        if artifact:
            return JobHandle(id=artifact, immediate=True, provider=ProviderId.FAL, kind=request.kind, model=model_id)
        request_id = data.get("request_id") or data.get("id")
        if not request_id:
            raise ProviderError(f"unexpected response format: {str(data)[:200]}", provider=self.provider_name)
        logger.info("Fal.ai request %s queued (model=%s)", request_id, model_id)
        return JobHandle(id=str(request_id), provider=ProviderId.FAL, kind=request.kind, model=model_id)

    async def check_status(self, job_id: str, model: str | None = None) -> GenerationJob:
        if is_artifact_ref(job_id):
            return succeeded_job(job_id, ProviderId.FAL, JobKind.VIDEO)

        headers = self._headers()
        app_id = _app_id(model or self._models[JobKind.VIDEO])
        response = await self._request(
            "GET", f"{FAL_QUEUE_URL}/{app_id}/requests/{job_id}/status", headers=headers
        )
        data = response.json()
        state = _QUEUE_STATUS_MAP.get(str(data.get("status", "")).upper(), JobState.PROCESSING)

        if state == JobState.SUCCEEDED:
            if data.get("error"):
                return GenerationJob(
                    id=job_id, provider=ProviderId.FAL, state=JobState.FAILED,
                    error=str(data["error"]), error_code="provider",
                )
            result = await self._request(
                "GET", f"{FAL_QUEUE_URL}/{app_id}/requests/{job_id}", headers=headers
            )
            artifact = _extract_artifact(result.json())
            if not artifact:
                return GenerationJob(
                    id=job_id, provider=ProviderId.FAL, state=JobState.FAILED,
                    error="Request completed without a video", error_code="provider",
                )
            return succeeded_job(artifact, ProviderId.FAL, JobKind.VIDEO, job_id=job_id)

        if state in (JobState.FAILED, JobState.CANCELED):
            return GenerationJob(
                id=job_id, provider=ProviderId.FAL, state=state,
                error=str(data.get("error") or "Request did not complete"),
                error_code="provider" if state == JobState.FAILED else "canceled",
            )

        progress = 50 if state == JobState.PROCESSING else 10
        logs = data.get("logs")
        return GenerationJob(
            id=job_id,
            provider=ProviderId.FAL,
            state=state,
            progress=progress,
            logs="\n".join(str(entry.get("message", "")) for entry in logs) if isinstance(logs, list) else None,
        )

    def _build_input(self, request: GenerationRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {"prompt": request.text}
        if request.reference_audio_url:
            # audio support is model dependent
            payload["audio_url"] = request.reference_audio_url
        if request.reference_image_url:
            payload["image_url"] = request.reference_image_url
        settings = request.settings
        if settings and request.kind == JobKind.VIDEO:
            payload["duration"] = settings.duration
            payload["resolution"] = RESOLUTION_MAP.get(settings.resolution, settings.resolution)
        return payload


def _app_id(model_id: str) -> str:
    """Queue status/result routes are keyed by the first two path segments."""
    return "/".join(model_id.split("/")[:2])


def _extract_artifact(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    video = data.get("video")
    if isinstance(video, dict) and video.get("url"):
        return video["url"]
    if isinstance(video, str) and video:
        return video
    output = data.get("output")
    if isinstance(output, dict):
        nested = output.get("video")
        if isinstance(nested, dict):
            return nested.get("url")
        if isinstance(nested, str):
            return nested
    images = data.get("images")
    if isinstance(images, list) and images and isinstance(images[0], dict):
        return images[0].get("url")
    if isinstance(data.get("video_url"), str):
        return data["video_url"]
    return None
