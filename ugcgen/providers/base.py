"""Provider adapter protocol."""

from typing import Protocol

from ugcgen.jobs.models import GenerationJob, GenerationRequest, JobHandle


class ProviderAdapter(Protocol):
    """Protocol for generation backends (Replicate, Fal.ai, Hugging Face, ElevenLabs, Google TTS)."""

    provider_name: str

    async def submit(self, request: GenerationRequest) -> JobHandle:
        """Validate, send exactly one creation request, and return a job handle."""
        ...

    async def check_status(self, job_id: str, model: str | None = None) -> GenerationJob:
        """Query job status once and normalize it to a canonical GenerationJob."""
        ...

    async def aclose(self) -> None:
        ...
