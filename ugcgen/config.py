"""Configuration loaded from environment (.env) and defaults."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the project root .env file regardless of CWD
_THIS_DIR = Path(__file__).resolve().parent          # ugcgen/
_PROJECT_ROOT = _THIS_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Generation providers
    replicate_api_token: str | None = None
    fal_api_key: str | None = None
    huggingface_api_key: str | None = None  # optional, free tier works without it
    elevenlabs_api_key: str | None = None
    elevenlabs_voice_id: str | None = None
    google_tts_api_key: str | None = None
    google_tts_voice: str | None = None

    # AI text suggestion providers (OpenAI-compatible endpoints)
    gemini_api_key: str | None = None
    grok_api_key: str | None = None
    deepseek_api_key: str | None = None
    openai_api_key: str | None = None
    ugc_suggest_provider: str = "gemini"

    # Default model ids per provider and job kind
    ugc_replicate_video_model: str = "google/veo-3.1"
    ugc_replicate_image_model: str = "black-forest-labs/flux-schnell"
    ugc_replicate_transcript_model: str = "openai/whisper"
    ugc_fal_video_model: str = "kling-video/v2.5-turbo/pro/text-to-video"
    ugc_fal_image_model: str = "fal-ai/flux/schnell"
    ugc_huggingface_video_model: str = "Lightricks/LTX-Video"
    ugc_huggingface_image_model: str = "runwayml/stable-diffusion-v1-5"
    ugc_huggingface_transcript_model: str = "openai/whisper-large-v3"
    ugc_elevenlabs_model: str = "eleven_multilingual_v2"
    ugc_default_voice_id: str = "EXAVITQu4vr4xnSDxMaL"
    ugc_google_default_voice: str = "en-US-Neural2-F"

    # Speech provider used by the pipeline, batches and the CLI (elevenlabs or google)
    ugc_speech_provider: str = "elevenlabs"

    # Job polling. 3 s x 200 attempts = 10 minutes
    ugc_poll_interval_seconds: float = 3.0
    ugc_poll_max_attempts: int = 200
    ugc_poll_timeout_seconds: float = 600.0

    # Batch items run one at a time with a pause between them (provider rate limits)
    ugc_batch_item_delay_seconds: float = 2.0

    # Job creation retries (rate limits, model loading)
    ugc_max_retries: int = 3
    ugc_default_retry_after_seconds: float = 10.0
    ugc_http_timeout_seconds: float = 60.0

    # Persisted collections
    ugc_data_dir: str = "./data"
    ugc_history_max_items: int = 50
    ugc_batch_max_jobs: int = 10
    ugc_collections_max: int = 20
    ugc_storage_max_bytes: int = 5 * 1024 * 1024

    ugc_log_level: str = "INFO"

    # CORS origins (comma-separated). Defaults to localhost dev.
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_origin_regex: str | None = None

    # Server port
    port: int = 8000

    @property
    def data_dir(self) -> Path:
        """Get data directory as Path.

        Relative paths are resolved against the project root (not CWD).
        """
        p = Path(self.ugc_data_dir)
        if not p.is_absolute():
            return (_PROJECT_ROOT / p).resolve()
        return p.resolve()

    @property
    def storage_dir(self) -> Path:
        """Directory holding one JSON file per persisted collection."""
        return self.data_dir / "storage"

    @property
    def media_dir(self) -> Path:
        """Scratch directory for ffmpeg outputs."""
        return self.data_dir / "media"

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def ensure_dirs(self) -> None:
        """Ensure all data directories exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self.media_dir.mkdir(parents=True, exist_ok=True)


def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_dirs()
    return settings
