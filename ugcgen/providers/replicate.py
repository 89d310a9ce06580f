"""Replicate predictions API: video (Veo 3.1 by default), image and Whisper transcription."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx

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
from ugcgen.providers.http import HTTPProviderAdapter, to_data_uri
from ugcgen.validation import validate_generation_request

logger = logging.getLogger(__name__)

REPLICATE_API_URL = "https://api.replicate.com/v1"

_STATUS_MAP = {
    "starting": JobState.STARTING,
    "processing": JobState.PROCESSING,
    "succeeded": JobState.SUCCEEDED,
    "failed": JobState.FAILED,
    "canceled": JobState.CANCELED,
    "aborted": JobState.CANCELED,
}
_ESTIMATED_PROGRESS = {
    JobState.STARTING: 10,
    JobState.PROCESSING: 50,
    JobState.SUCCEEDED: 100,
    JobState.FAILED: 0,
    JobState.CANCELED: 0,
}
_PERCENT_RE = re.compile(r"(\d{1,3})%")


class ReplicateAdapter(HTTPProviderAdapter):
    """Replicate predictions. Creation returns a prediction id to poll."""

    provider_name = "replicate"

    def __init__(
        self,
        api_key: str | None = None,
        video_model: str = "google/veo-3.1",
        image_model: str = "black-forest-labs/flux-schnell",
        transcript_model: str = "openai/whisper",
        **kwargs: Any,
    ):
        super().__init__(api_key=api_key, **kwargs)
        self._models = {
            JobKind.VIDEO: video_model,
            JobKind.IMAGE: image_model,
            JobKind.TRANSCRIPT: transcript_model,
        }

    def _rate_limit_remedy(self) -> str:
        return (
            "Accounts without a payment method are limited to 6 requests per minute; "
            "add billing at https://replicate.com/account/billing to increase the rate limit"
        )

    def _headers(self) -> dict[str, str]:
        token = self._require_key("REPLICATE_API_TOKEN")
        return {"Authorization": f"Bearer {token}", "Content-Type": "application/json"}

    async def submit(self, request: GenerationRequest) -> JobHandle:
        request = validate_generation_request(request)
        if request.kind not in self._models:
            raise NotFoundError(
                f"{request.kind.value} generation is not supported",
                provider=self.provider_name,
                remedy="Choose a different provider",
            )
        headers = self._headers()
        model = request.model or self._models[request.kind]
        owner, name = _split_model(model)

        response = await self._request(
            "POST",
            f"{REPLICATE_API_URL}/models/{owner}/{name}/predictions",
            headers=headers,
            json={"input": self._build_input(request)},
        )
        data = response.json()
        prediction_id = data.get("id")
        logger.info("Replicate prediction %s created (model=%s)", prediction_id, model)

        if data.get("status") == "succeeded":
            output = _extract_output(data.get("output"))
            if output:
                return JobHandle(id=output, immediate=True, provider=ProviderId.REPLICATE, kind=request.kind, model=model)
        if not prediction_id:
            raise ProviderError("response did not include a prediction id", provider=self.provider_name)
        return JobHandle(id=prediction_id, provider=ProviderId.REPLICATE, kind=request.kind, model=model)

    async def check_status(self, job_id: str, model: str | None = None) -> GenerationJob:
        if is_artifact_ref(job_id):
            return succeeded_job(job_id, ProviderId.REPLICATE, JobKind.VIDEO)
        response = await self._request(
            "GET", f"{REPLICATE_API_URL}/predictions/{job_id}", headers=self._headers()
        )
        return normalize_prediction(response.json())

    def _build_input(self, request: GenerationRequest) -> dict[str, Any]:
        if request.kind == JobKind.TRANSCRIPT:
            audio = request.reference_audio_url
            if request.audio_bytes:
                audio = to_data_uri(request.audio_bytes, "audio/mpeg")
            payload: dict[str, Any] = {"audio": audio}
            if request.language:
                payload["language"] = request.language
            return payload

        payload = {"prompt": request.text}
        if request.kind == JobKind.VIDEO:
            settings = request.settings
            payload["duration"] = settings.duration if settings else 8
            payload["resolution"] = settings.resolution if settings else "1080p"
            if settings and settings.style:
                payload["style"] = settings.style
            # Veo 3.1 syncs to a reference audio track
            if request.reference_audio_url:
                payload["audio"] = request.reference_audio_url
        if request.reference_image_url:
            payload["image"] = request.reference_image_url
        return payload


def normalize_prediction(data: dict[str, Any]) -> GenerationJob:
    """Map a Replicate prediction payload onto the canonical job fields."""
    state = _STATUS_MAP.get(str(data.get("status", "")).lower(), JobState.PROCESSING)
    logs = data.get("logs") or None
    kwargs: dict[str, Any] = {
        "id": str(data.get("id", "")),
        "provider": ProviderId.REPLICATE,
        "state": state,
        "logs": logs,
    }

    if state == JobState.SUCCEEDED:
        output = _extract_output(data.get("output"))
        if not output:
            kwargs.update(state=JobState.FAILED, error="Prediction finished without an output", error_code="provider")
        else:
            kwargs.update(output=output, progress=100)
    elif state in (JobState.FAILED, JobState.CANCELED):
        message = data.get("error") or ("Prediction was canceled" if state == JobState.CANCELED else "Prediction failed")
        kwargs.update(error=str(message), error_code="provider" if state == JobState.FAILED else "canceled")
    else:
        kwargs["progress"] = _progress_from_logs(logs) or _ESTIMATED_PROGRESS[state]
    return GenerationJob(**kwargs)


def _progress_from_logs(logs: str | None) -> int | None:
    if not logs:
        return None
    matches = _PERCENT_RE.findall(logs)
    if not matches:
        return None
    # A finished progress bar does not mean the prediction is finished
    return min(int(matches[-1]), 99)


def _extract_output(output: Any) -> str | None:
    if isinstance(output, str):
        return output or None
    if isinstance(output, list) and output:
        first = output[0]
        return first if isinstance(first, str) else None
    if isinstance(output, dict):
        for key in ("video", "url", "audio", "image"):
            value = output.get(key)
            if isinstance(value, str) and value:
                return value
        text = output.get("transcription") or output.get("text")
        if isinstance(text, str):
            return to_data_uri(text.encode("utf-8"), "text/plain")
    return None


def _split_model(model: str) -> tuple[str, str]:
    """'owner/name' or just 'name' (owner defaults to google)."""
    if "/" in model:
        owner, name = model.split("/", 1)
        return owner, name.split(":", 1)[0]
    return "google", model
