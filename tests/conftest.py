"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import pytest

from ugcgen.config import Settings
from ugcgen.history import BatchTracker, CollectionTracker, HistoryTracker, InMemoryCollectionStore
from ugcgen.jobs.models import GenerationJob, GenerationRequest, JobHandle, JobKind, JobState, ProviderId


class FakeTime:
    """Virtual clock whose ``sleep`` advances time instantly and records each delay."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeAdapter:
    """Scripted provider adapter.

    ``submit_results`` and ``statuses`` are consumed in order; an Exception
    instance in either list is raised instead of returned.
    """

    def __init__(
        self,
        provider_name: str = "replicate",
        submit_results: list | None = None,
        statuses: list | None = None,
    ):
        self.provider_name = provider_name
        self.submit_results = list(submit_results or [])
        self.statuses = list(statuses or [])
        self.submitted: list[GenerationRequest] = []
        self.checked: list[str] = []
        self.closed = False

    async def submit(self, request: GenerationRequest) -> JobHandle:
        self.submitted.append(request)
        result = self.submit_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def check_status(self, job_id: str, model: str | None = None) -> GenerationJob:
        self.checked.append(job_id)
        result = self.statuses.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def aclose(self) -> None:
        self.closed = True


def job(state: JobState, job_id: str = "pred_1", progress: int = 0, **kwargs) -> GenerationJob:
    """Build a status observation for FakeAdapter scripts."""
    return GenerationJob(id=job_id, state=state, progress=progress, **kwargs)


def handle(job_id: str = "pred_1", provider: ProviderId = ProviderId.REPLICATE, kind: JobKind = JobKind.VIDEO) -> JobHandle:
    return JobHandle.from_raw(job_id, provider, kind)


@pytest.fixture
def fake_time():
    return FakeTime()


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from any local .env, with every delay set to zero."""
    return Settings(
        _env_file=None,
        ugc_data_dir=str(tmp_path / "data"),
        replicate_api_token="r8_test_token",
        fal_api_key="fal_test_key",
        elevenlabs_api_key="sk_test_elevenlabs_key",
        ugc_poll_interval_seconds=0,
        ugc_batch_item_delay_seconds=0,
        ugc_default_retry_after_seconds=0,
    )


@pytest.fixture
def store():
    return InMemoryCollectionStore()


@pytest.fixture
def history(store):
    return HistoryTracker(store)


@pytest.fixture
def batches(store):
    return BatchTracker(store)


@pytest.fixture
def collections(store):
    return CollectionTracker(store)
