"""Provider adapter layer: Replicate, Fal.ai, Hugging Face, ElevenLabs and Google TTS behind a common protocol."""

from typing import Any

from ugcgen.config import Settings, get_settings
from ugcgen.jobs.models import ProviderId
from ugcgen.providers.base import ProviderAdapter
from ugcgen.providers.elevenlabs import ElevenLabsAdapter
from ugcgen.providers.errors import (
    AuthError,
    JobCanceledError,
    JobTimeoutError,
    NotFoundError,
    ProviderError,
    RateLimitError,
    TransientError,
    ValidationError,
    error_for_code,
)
from ugcgen.providers.fal import FalAdapter
from ugcgen.providers.google_tts import GoogleTTSAdapter
from ugcgen.providers.huggingface import HuggingFaceAdapter
from ugcgen.providers.replicate import ReplicateAdapter
from ugcgen.providers.retry import submit_with_model_fallback, submit_with_retries


def get_adapter(provider: ProviderId | str, settings: Settings | None = None, **kwargs: Any) -> ProviderAdapter:
    """Return the adapter for a provider, configured from settings."""
    settings = settings or get_settings()
    common: dict[str, Any] = {
        "timeout": settings.ugc_http_timeout_seconds,
        "default_retry_after": settings.ugc_default_retry_after_seconds,
        **kwargs,
    }
    try:
        provider_id = ProviderId(provider)
    except ValueError:
        raise ValidationError(f"Invalid provider: {provider}")

    if provider_id == ProviderId.REPLICATE:
        return ReplicateAdapter(
            api_key=settings.replicate_api_token,
            video_model=settings.ugc_replicate_video_model,
            image_model=settings.ugc_replicate_image_model,
            transcript_model=settings.ugc_replicate_transcript_model,
            **common,
        )
    if provider_id == ProviderId.FAL:
        return FalAdapter(
            api_key=settings.fal_api_key,
            video_model=settings.ugc_fal_video_model,
            image_model=settings.ugc_fal_image_model,
            **common,
        )
    if provider_id == ProviderId.HUGGINGFACE:
        return HuggingFaceAdapter(
            api_key=settings.huggingface_api_key,
            video_model=settings.ugc_huggingface_video_model,
            image_model=settings.ugc_huggingface_image_model,
            transcript_model=settings.ugc_huggingface_transcript_model,
            **common,
        )
    if provider_id == ProviderId.GOOGLE:
        return GoogleTTSAdapter(
            api_key=settings.google_tts_api_key,
            voice=settings.google_tts_voice,
            default_voice=settings.ugc_google_default_voice,
            **common,
        )
    return ElevenLabsAdapter(
        api_key=settings.elevenlabs_api_key,
        voice_id=settings.elevenlabs_voice_id,
        model_id=settings.ugc_elevenlabs_model,
        default_voice_id=settings.ugc_default_voice_id,
        **common,
    )


__all__ = [
    "AuthError",
    "ElevenLabsAdapter",
    "FalAdapter",
    "GoogleTTSAdapter",
    "HuggingFaceAdapter",
    "JobCanceledError",
    "JobTimeoutError",
    "NotFoundError",
    "ProviderAdapter",
    "ProviderError",
    "RateLimitError",
    "ReplicateAdapter",
    "TransientError",
    "ValidationError",
    "error_for_code",
    "get_adapter",
    "submit_with_model_fallback",
    "submit_with_retries",
]
