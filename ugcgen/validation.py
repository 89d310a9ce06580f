"""Input validation and sanitization for generation requests.

Everything here runs before a request reaches a provider; failures raise
``ValidationError`` so no network call is made.
"""

from __future__ import annotations

import math
import re

from ugcgen.jobs.models import GenerationRequest, JobKind, VideoSettings
from ugcgen.providers.errors import ValidationError

MAX_TEXT_LENGTH = 5000
MIN_TEXT_LENGTH = 10

VALID_DURATIONS = (5, 8, 15, 30)
VALID_RESOLUTIONS = ("720p", "1080p", "4K")
VALID_STYLES = ("professional", "friendly", "energetic", "calm", "dramatic")

_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
_WHITESPACE = re.compile(r"\s+")
_VOICE_ID = re.compile(r"^[a-zA-Z0-9]{21}$")

_HARMFUL_PATTERNS = (
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),  # inline handlers like onclick=
)


def sanitize_text(text: str) -> str:
    """Strip control characters and collapse whitespace."""
    return _WHITESPACE.sub(" ", _CONTROL_CHARS.sub(" ", text)).strip()


def validate_text(text: str | None, min_length: int = MIN_TEXT_LENGTH) -> str:
    """Return the sanitized text or raise ValidationError."""
    if not text or not isinstance(text, str):
        raise ValidationError("Text input is required")

    sanitized = sanitize_text(text)
    if not sanitized:
        raise ValidationError("Text input is required")
    if len(sanitized) < min_length:
        raise ValidationError(f"Text must be at least {min_length} characters")
    if len(sanitized) > MAX_TEXT_LENGTH:
        raise ValidationError(f"Text can be at most {MAX_TEXT_LENGTH} characters")

    for pattern in _HARMFUL_PATTERNS:
        if pattern.search(sanitized):
            raise ValidationError("Text was rejected for security reasons")
    return sanitized


def is_valid_voice_id(voice_id: str | None) -> bool:
    """ElevenLabs voice ids are 21 alphanumeric characters. Missing ids are allowed."""
    if not voice_id:
        return True
    return bool(_VOICE_ID.match(voice_id.strip()))


def validate_video_settings(settings: VideoSettings | None) -> None:
    if settings is None:
        return
    if settings.duration not in VALID_DURATIONS:
        allowed = ", ".join(str(d) for d in VALID_DURATIONS)
        raise ValidationError(f"Invalid video duration. Allowed values: {allowed} seconds")
    if settings.resolution not in VALID_RESOLUTIONS:
        raise ValidationError(f"Invalid resolution. Allowed values: {', '.join(VALID_RESOLUTIONS)}")
    if settings.style not in VALID_STYLES:
        raise ValidationError(f"Invalid video style. Allowed values: {', '.join(VALID_STYLES)}")


def validate_generation_request(request: GenerationRequest) -> GenerationRequest:
    """Check a request before it is submitted; returns a copy with sanitized text.

    Transcription requests carry audio instead of a prompt.
    """
    if request.kind == JobKind.TRANSCRIPT:
        if not request.audio_bytes and not request.reference_audio_url:
            raise ValidationError("Audio data is required for transcription")
        return request

    if not request.text or not sanitize_text(request.text):
        raise ValidationError("Text input is required")
    text = validate_text(request.text, min_length=1)
    validate_video_settings(request.settings)
    return request.model_copy(update={"text": text})


def estimate_video_duration(text: str) -> int:
    """Seconds of speech at ~2.5 words per second, clamped to 5-30."""
    words = len(text.split())
    estimated = math.ceil(words / 2.5)
    return max(5, min(30, estimated))
