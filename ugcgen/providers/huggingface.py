"""Hugging Face Inference router: synchronous text-to-video, text-to-image and Whisper."""

from __future__ import annotations

import logging
from typing import Any

from ugcgen.jobs.models import (
    GenerationJob,
    GenerationRequest,
    JobHandle,
    JobKind,
    ProviderId,
    is_artifact_ref,
    succeeded_job,
)
from ugcgen.providers.errors import NotFoundError, ProviderError
from ugcgen.providers.http import HTTPProviderAdapter, to_data_uri
from ugcgen.validation import validate_generation_request

logger = logging.getLogger(__name__)

HF_INFERENCE_URL = "https://router.huggingface.co/hf-inference/models"

# Tried in order by the model fallback policy when the selected model is gone
VIDEO_FALLBACK_MODELS = [
    "Lightricks/LTX-Video",
    "tencent/HunyuanVideo",
    "Lightricks/LTX-Video-0.9.8-13B-distilled",
]
IMAGE_FALLBACK_MODELS = [
    "runwayml/stable-diffusion-v1-5",
    "CompVis/stable-diffusion-v1-4",
    "stabilityai/stable-diffusion-xl-base-1.0",
    "stabilityai/sdxl-turbo",
    "black-forest-labs/FLUX.1-schnell",
]


class HuggingFaceAdapter(HTTPProviderAdapter):
    """Synchronous provider: the creation response carries the artifact itself."""

    provider_name = "huggingface"

    def __init__(
        self,
        api_key: str | None = None,
        video_model: str = "Lightricks/LTX-Video",
        image_model: str = "runwayml/stable-diffusion-v1-5",
        transcript_model: str = "openai/whisper-large-v3",
        **kwargs: Any,
    ):
        super().__init__(api_key=api_key, **kwargs)
        self._models = {
            JobKind.VIDEO: video_model,
            JobKind.IMAGE: image_model,
            JobKind.TRANSCRIPT: transcript_model,
        }

    def _rate_limit_remedy(self) -> str:
        return "The free tier allows 1000 requests per day; try again later or add HUGGINGFACE_API_KEY"

    def _headers(self, json_body: bool = True) -> dict[str, str]:
        headers = {"Content-Type": "application/json"} if json_body else {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        else:
            logger.warning("Hugging Face API key not found. Using free tier (may have rate limits).")
        return headers

    async def submit(self, request: GenerationRequest) -> JobHandle:
        request = validate_generation_request(request)
        if request.kind not in self._models:
            raise NotFoundError(
                f"{request.kind.value} generation is not supported",
                provider=self.provider_name,
                remedy="Choose a different provider",
            )
        model = request.model or self._models[request.kind]
        url = f"{HF_INFERENCE_URL}/{model}"

        if request.kind == JobKind.TRANSCRIPT and request.audio_bytes:
            response = await self._request(
                "POST", url, headers=self._headers(json_body=False), content=request.audio_bytes
            )
        else:
            response = await self._request("POST", url, headers=self._headers(), json=self._build_body(request))

        artifact = _artifact_from_response(response.headers.get("content-type", ""), response)
        if not artifact:
            raise ProviderError(
                f"model {model} returned no artifact",
                provider=self.provider_name,
                remedy="Select Replicate or Fal.ai for more reliable text-to-video models",
            )
        logger.info("Hugging Face %s generation finished (model=%s)", request.kind.value, model)
        return JobHandle(id=artifact, immediate=True, provider=ProviderId.HUGGINGFACE, kind=request.kind, model=model)

    async def check_status(self, job_id: str, model: str | None = None) -> GenerationJob:
        if is_artifact_ref(job_id):
            return succeeded_job(job_id, ProviderId.HUGGINGFACE, JobKind.VIDEO)
        raise ProviderError(
            f"no status endpoint for job {job_id}; inference results are returned synchronously",
            provider=self.provider_name,
        )

    def _build_body(self, request: GenerationRequest) -> dict[str, Any]:
        if request.kind == JobKind.TRANSCRIPT:
            return {"inputs": request.reference_audio_url}
        body: dict[str, Any] = {"inputs": request.text}
        if request.kind == JobKind.VIDEO and request.settings:
            body["parameters"] = {"num_inference_steps": min(50, request.settings.duration * 5)}
        return body


def _artifact_from_response(content_type: str, response: Any) -> str | None:
    media_type = content_type.split(";")[0].strip().lower()
    if media_type.startswith(("video/", "image/", "audio/")):
        return to_data_uri(response.content, media_type)

    try:
        data = response.json()
    except ValueError:
        return None

    if isinstance(data, str):
        return data if is_artifact_ref(data) else None
    if isinstance(data, list) and data:
        data = data[0]
    if not isinstance(data, dict):
        return None
    for key in ("generated_video", "video", "url", "video_url", "image"):
        value = data.get(key)
        if isinstance(value, dict):
            value = value.get("url")
        if isinstance(value, str) and value:
            return value
    text = data.get("text")
    if isinstance(text, str):
        return to_data_uri(text.encode("utf-8"), "text/plain")
    return None
