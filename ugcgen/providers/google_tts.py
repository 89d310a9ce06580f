"""Google Cloud Text-to-Speech (synchronous) and voice catalog."""

from __future__ import annotations

import logging
import re
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
from ugcgen.providers.elevenlabs import Voice
from ugcgen.providers.errors import NotFoundError, ProviderError
from ugcgen.providers.http import HTTPProviderAdapter
from ugcgen.validation import validate_generation_request

logger = logging.getLogger(__name__)

GOOGLE_TTS_API_URL = "https://texttospeech.googleapis.com/v1"
DEFAULT_GOOGLE_VOICE = "en-US-Neural2-F"

# <language>-<REGION>-<family>-<variant>, e.g. en-US-Wavenet-A
_VOICE_NAME = re.compile(r"^[a-z]{2,3}-[A-Z]{2}-[A-Za-z0-9]+-[A-Za-z0-9]+$")


def is_google_voice(name: str | None) -> bool:
    return bool(name and _VOICE_NAME.match(name))


def language_of(voice_name: str) -> str:
    return "-".join(voice_name.split("-")[:2])


class GoogleTTSAdapter(HTTPProviderAdapter):
    """MP3 comes back base64-encoded in the synthesize response; every handle is immediate."""

    provider_name = "google"

    def __init__(
        self,
        api_key: str | None = None,
        voice: str | None = None,
        default_voice: str = DEFAULT_GOOGLE_VOICE,
        speaking_rate: float = 1.0,
        **kwargs: Any,
    ):
        super().__init__(api_key=api_key, **kwargs)
        self._voice = voice
        self._default_voice = default_voice
        self._speaking_rate = speaking_rate

    def _headers(self) -> dict[str, str]:
        return {"x-goog-api-key": self._require_key("GOOGLE_TTS_API_KEY"), "Content-Type": "application/json"}

    def resolve_voice(self, voice: str | None) -> str:
        candidate = (voice or self._voice or self._default_voice).strip()
        if not is_google_voice(candidate):
            logger.warning("Invalid Google voice %r; using %s", candidate, self._default_voice)
            return self._default_voice
        return candidate

    async def submit(self, request: GenerationRequest) -> JobHandle:
        request = validate_generation_request(request)
        if request.kind != JobKind.AUDIO:
            raise NotFoundError(
                f"{request.kind.value} generation is not supported",
                provider=self.provider_name,
                remedy="Choose a different provider",
            )
        headers = self._headers()
        voice = self.resolve_voice(request.voice_id)
        response = await self._request(
            "POST",
            f"{GOOGLE_TTS_API_URL}/text:synthesize",
            headers=headers,
            json={
                "input": {"text": request.text},
                "voice": {"languageCode": request.language or language_of(voice), "name": voice},
                "audioConfig": {"audioEncoding": "MP3", "speakingRate": self._speaking_rate, "pitch": 0},
            },
        )
        audio = (response.json() or {}).get("audioContent")
        if not audio:
            raise ProviderError("response did not include audio content", provider=self.provider_name)
        return JobHandle(
            id=f"data:audio/mpeg;base64,{audio}",
            immediate=True,
            provider=ProviderId.GOOGLE,
            kind=JobKind.AUDIO,
            model=voice,
        )

    async def check_status(self, job_id: str, model: str | None = None) -> GenerationJob:
        if is_artifact_ref(job_id):
            return succeeded_job(job_id, ProviderId.GOOGLE, JobKind.AUDIO)
        raise ProviderError(f"unknown speech job {job_id}", provider=self.provider_name)

    async def list_voices(self, language: str | None = None) -> list[Voice]:
        params = {"languageCode": language} if language else None
        response = await self._request("GET", f"{GOOGLE_TTS_API_URL}/voices", headers=self._headers(), params=params)
        raw = (response.json() or {}).get("voices") or []
        voices = [_to_voice(v) for v in raw if isinstance(v, dict) and v.get("name")]
        return sorted(voices, key=lambda v: v.name)


def _to_voice(data: dict[str, Any]) -> Voice:
    gender = str(data.get("ssmlGender") or "").lower()
    return Voice(
        voice_id=data["name"],
        name=data["name"],
        category=gender or None,
        labels={
            "language": ",".join(data.get("languageCodes") or []),
            "sample_rate": str(data.get("naturalSampleRateHertz") or ""),
        },
    )
