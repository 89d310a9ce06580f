"""ElevenLabs text-to-speech (synchronous) and voice catalog."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

from ugcgen.jobs.models import (
    GenerationJob,
    GenerationRequest,
    JobHandle,
    JobKind,
    ProviderId,
    is_artifact_ref,
    succeeded_job,
)
from ugcgen.providers.errors import AuthError, NotFoundError, ProviderError
from ugcgen.providers.http import HTTPProviderAdapter, to_data_uri
from ugcgen.validation import is_valid_voice_id, validate_generation_request

logger = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
DEFAULT_VOICE_ID = "EXAVITQu4vr4xnSDxMaL"  # Bella, multilingual


class Voice(BaseModel):
    voice_id: str
    name: str = "Unknown"
    category: str | None = None
    description: str | None = None
    preview_url: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)


class ElevenLabsAdapter(HTTPProviderAdapter):
    """Speech comes back in the creation response, so every handle is immediate."""

    provider_name = "elevenlabs"

    def __init__(
        self,
        api_key: str | None = None,
        voice_id: str | None = None,
        model_id: str = "eleven_multilingual_v2",
        default_voice_id: str = DEFAULT_VOICE_ID,
        **kwargs: Any,
    ):
        super().__init__(api_key=api_key, **kwargs)
        self._voice_id = voice_id
        self._model_id = model_id
        self._default_voice_id = default_voice_id

    def _headers(self) -> dict[str, str]:
        key = self._require_key("ELEVENLABS_API_KEY")
        if len(key) < 10:
            raise AuthError(
                "ELEVENLABS_API_KEY appears to be invalid (too short)",
                provider=self.provider_name,
                remedy="Check the API key in your .env file",
            )
        return {"xi-api-key": key, "Content-Type": "application/json"}

    def resolve_voice(self, voice_id: str | None) -> str:
        candidate = (voice_id or self._voice_id or self._default_voice_id).strip()
        if not is_valid_voice_id(candidate):
            logger.warning("Invalid voice id %r (length %d); using default voice", candidate, len(candidate))
            return self._default_voice_id
        return candidate

    async def submit(self, request: GenerationRequest) -> JobHandle:
        request = validate_generation_request(request)
        if request.kind != JobKind.AUDIO:
            raise NotFoundError(
                f"{request.kind.value} generation is not supported",
                provider=self.provider_name,
                remedy="Choose a different provider",
            )
        headers = {**self._headers(), "Accept": "audio/mpeg"}
        voice = self.resolve_voice(request.voice_id)
        logger.debug("Using voice %s, text length %d", voice, len(request.text))

        response = await self._request(
            "POST",
            f"{ELEVENLABS_API_URL}/text-to-speech/{voice}",
            headers=headers,
            json={
                "text": request.text,
                "model_id": request.model or self._model_id,
                "voice_settings": {"stability": 0.5, "similarity_boost": 0.75},
            },
        )
        audio_url = to_data_uri(response.content, response.headers.get("content-type") or "audio/mpeg")
        return JobHandle(id=audio_url, immediate=True, provider=ProviderId.ELEVENLABS, kind=JobKind.AUDIO, model=voice)

    async def check_status(self, job_id: str, model: str | None = None) -> GenerationJob:
        if is_artifact_ref(job_id):
            return succeeded_job(job_id, ProviderId.ELEVENLABS, JobKind.AUDIO)
        raise ProviderError(f"unknown speech job {job_id}", provider=self.provider_name)

    async def list_voices(self) -> list[Voice]:
        response = await self._request("GET", f"{ELEVENLABS_API_URL}/voices", headers=self._headers())
        raw = response.json().get("voices") or []
        voices = [_to_voice(v) for v in raw if isinstance(v, dict)]
        return sorted(voices, key=_voice_sort_key)


def _to_voice(data: dict[str, Any]) -> Voice:
    labels = data.get("labels") or {}
    samples = data.get("samples") or []
    preview = data.get("preview_url") or (samples[0].get("preview_url") if samples and isinstance(samples[0], dict) else None)
    return Voice(
        voice_id=data.get("voice_id") or data.get("id") or "",
        name=data.get("name") or "Unknown",
        category=data.get("category") or labels.get("category"),
        description=data.get("description") or labels.get("description"),
        preview_url=preview,
        labels={k: str(v) for k, v in labels.items()},
    )


def _voice_sort_key(voice: Voice) -> tuple[int, int, str]:
    # premade voices first, then voices with a preview, then alphabetical
    premade = voice.category in (None, "premade", "premium")
    return (0 if premade else 1, 0 if voice.preview_url else 1, voice.name.lower())
