"""Provider catalog and availability checks."""

from __future__ import annotations

from pydantic import BaseModel

from ugcgen.config import Settings
from ugcgen.jobs.models import JobKind, ProviderId
from ugcgen.providers.errors import ValidationError


class ProviderConfig(BaseModel):
    provider: ProviderId
    name: str
    description: str
    requires_api_key: bool
    api_key_env: str
    settings_field: str
    kinds: list[JobKind]
    supports_audio: bool = False
    audio_support_note: str = ""


PROVIDERS: list[ProviderConfig] = [
    ProviderConfig(
        provider=ProviderId.REPLICATE,
        name="Replicate",
        description="High quality, paid (limited free tier)",
        requires_api_key=True,
        api_key_env="REPLICATE_API_TOKEN",
        settings_field="replicate_api_token",
        kinds=[JobKind.VIDEO, JobKind.IMAGE, JobKind.TRANSCRIPT],
        supports_audio=True,
        audio_support_note="Audio sync is supported with Google Veo 3.1",
    ),
    ProviderConfig(
        provider=ProviderId.FAL,
        name="Fal.ai",
        description="Fast and reliable, 100 free requests per day",
        requires_api_key=True,
        api_key_env="FAL_API_KEY",
        settings_field="fal_api_key",
        kinds=[JobKind.VIDEO, JobKind.IMAGE],
        audio_support_note="Audio support depends on the model",
    ),
    ProviderConfig(
        provider=ProviderId.HUGGINGFACE,
        name="Hugging Face",
        description="Open source, 1000 free requests per day",
        requires_api_key=False,
        api_key_env="HUGGINGFACE_API_KEY",
        settings_field="huggingface_api_key",
        kinds=[JobKind.VIDEO, JobKind.IMAGE, JobKind.TRANSCRIPT],
        audio_support_note="Most models are text-to-video only",
    ),
    ProviderConfig(
        provider=ProviderId.ELEVENLABS,
        name="ElevenLabs",
        description="Natural multilingual text-to-speech",
        requires_api_key=True,
        api_key_env="ELEVENLABS_API_KEY",
        settings_field="elevenlabs_api_key",
        kinds=[JobKind.AUDIO],
    ),
    ProviderConfig(
        provider=ProviderId.GOOGLE,
        name="Google Cloud TTS",
        description="WaveNet and Neural2 voices, 1-4 million free characters per month",
        requires_api_key=True,
        api_key_env="GOOGLE_TTS_API_KEY",
        settings_field="google_tts_api_key",
        kinds=[JobKind.AUDIO],
    ),
]


def get_provider_config(provider: ProviderId | str) -> ProviderConfig:
    provider_id = ProviderId(provider)
    for config in PROVIDERS:
        if config.provider == provider_id:
            return config
    raise ValueError(f"Unknown provider: {provider}")


def is_provider_available(provider: ProviderId | str, settings: Settings) -> bool:
    """Credential present and plausibly long, or not required at all."""
    config = get_provider_config(provider)
    if not config.requires_api_key:
        return True
    key = (getattr(settings, config.settings_field, None) or "").strip()
    return len(key) > 10


def speech_providers() -> list[ProviderId]:
    return [p.provider for p in PROVIDERS if JobKind.AUDIO in p.kinds]


def require_kind(provider: ProviderId | str, kind: JobKind) -> ProviderId:
    """Reject a provider that cannot produce ``kind`` before any adapter is built."""
    try:
        config = get_provider_config(provider)
    except ValueError:
        raise ValidationError(f"Invalid provider: {provider}")
    if kind not in config.kinds:
        raise ValidationError(
            f"{config.name} does not support {kind.value} generation",
            provider=config.provider.value,
        )
    return config.provider
