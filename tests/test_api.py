"""API tests with FastAPI's TestClient; providers are replaced by scripted adapters."""

import pytest
from fastapi.testclient import TestClient

from backend import deps
from backend.main import _rate_store, app
from conftest import FakeAdapter, handle, job
from ugcgen.jobs.models import JobKind, JobState, ProviderId
from ugcgen.media import editing
from ugcgen.providers.errors import RateLimitError

AUDIO = "data:audio/mpeg;base64,SUQz"
SCRIPT = "Check out this amazing new blender!"


class AdapterPool:
    """Hands out prepared adapters by provider name; unprepared providers get an empty script."""

    def __init__(self):
        self.adapters: dict[str, FakeAdapter] = {}

    def prepare(self, provider: str, **script) -> FakeAdapter:
        self.adapters[provider] = FakeAdapter(provider_name=provider, **script)
        return self.adapters[provider]

    def __call__(self, provider: str) -> FakeAdapter:
        return self.adapters.setdefault(provider, FakeAdapter(provider_name=provider))


@pytest.fixture
def pool():
    return AdapterPool()


@pytest.fixture
def client(settings, history, batches, collections, pool):
    _rate_store.clear()
    app.dependency_overrides.update({
        deps.app_settings: lambda: settings,
        deps.history_tracker: lambda: history,
        deps.batch_tracker: lambda: batches,
        deps.collection_tracker: lambda: collections,
        deps.adapter_factory: lambda: pool,
    })
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    _rate_store.clear()


def test_health(client):
    assert client.get("/api/health").json()["status"] == "ok"


class TestGeneration:
    def test_generate_audio(self, client, pool):
        pool.prepare("elevenlabs", submit_results=[handle(AUDIO, ProviderId.ELEVENLABS, JobKind.AUDIO)])
        response = client.post("/api/generate-audio", json={"text": SCRIPT})
        assert response.status_code == 200
        assert response.json() == {"success": True, "audio_url": AUDIO}
        assert pool.adapters["elevenlabs"].closed

    def test_generate_audio_with_google(self, client, pool):
        google = pool.prepare("google", submit_results=[handle(AUDIO, ProviderId.GOOGLE, JobKind.AUDIO)])
        response = client.post("/api/generate-audio", json={"text": SCRIPT, "provider": "google", "voice_id": "en-US-Neural2-F"})
        assert response.json() == {"success": True, "audio_url": AUDIO}
        assert google.submitted[0].provider == ProviderId.GOOGLE
        assert google.submitted[0].voice_id == "en-US-Neural2-F"

    def test_generate_audio_rejects_video_provider(self, client, pool):
        response = client.post("/api/generate-audio", json={"text": SCRIPT, "provider": "replicate"})
        assert response.status_code == 400
        assert response.json()["code"] == "validation"
        assert pool.adapters == {}

    def test_generate_video_returns_prediction_id(self, client, pool):
        video = pool.prepare("replicate", submit_results=[handle("pred_1")])
        response = client.post("/api/generate-video", json={
            "prompt": SCRIPT,
            "audio_url": AUDIO,
            "settings": {"duration": 15, "resolution": "720p", "style": "calm"},
        })
        body = response.json()
        assert response.status_code == 200
        assert body["prediction_id"] == "pred_1"
        assert body["status"] == "starting"
        assert video.submitted[0].reference_audio_url == AUDIO

    def test_synchronous_provider_returns_output(self, client, pool):
        pool.prepare("huggingface", submit_results=[handle("data:video/mp4;base64,AAAA", ProviderId.HUGGINGFACE)])
        body = client.post("/api/generate-video", json={"prompt": SCRIPT, "provider": "huggingface"}).json()
        assert body["status"] == "succeeded"
        assert body["output"] == "data:video/mp4;base64,AAAA"
        assert body["prediction_id"] is None

    def test_invalid_settings_are_rejected_before_submit(self, client, pool):
        video = pool.prepare("replicate", submit_results=[handle()])
        response = client.post("/api/generate-video", json={"prompt": SCRIPT, "settings": {"duration": 12}})
        assert response.status_code == 400
        assert response.json()["success"] is False
        assert video.submitted == []

    def test_video_status(self, client, pool):
        pool.prepare("fal", statuses=[job(JobState.PROCESSING, job_id="req_1", progress=50)])
        response = client.get("/api/video-status", params={
            "prediction_id": "req_1", "provider": "fal", "model": "kling-video/v2.5-turbo/pro/text-to-video",
        })
        body = response.json()
        assert body["status"] == "processing"
        assert body["progress"] == 50
        assert body["success"] is True

    def test_video_status_canceled_is_not_success(self, client, pool):
        pool.prepare("replicate", statuses=[job(JobState.CANCELED, error="Prediction was canceled")])
        body = client.get("/api/video-status", params={"prediction_id": "pred_1"}).json()
        assert body["status"] == "canceled"
        assert body["success"] is False

    def test_video_status_failed(self, client, pool):
        pool.prepare("replicate", statuses=[job(JobState.FAILED, error="NSFW content", error_code="provider")])
        body = client.get("/api/video-status", params={"prediction_id": "pred_1"}).json()
        assert body["success"] is False
        assert body["error"] == "NSFW content"

    def test_rate_limit_maps_to_429(self, client, pool):
        pool.prepare("replicate", statuses=[RateLimitError("rate limit exceeded", provider="replicate", retry_after=12)])
        response = client.get("/api/video-status", params={"prediction_id": "pred_1"})
        assert response.status_code == 429
        assert response.headers["retry-after"] == "12"
        assert response.json()["code"] == "rate_limit"

    def test_generate_image_polls_to_completion(self, client, pool):
        pool.prepare(
            "replicate",
            submit_results=[handle("pred_img", kind=JobKind.IMAGE)],
            statuses=[
                job(JobState.PROCESSING, job_id="pred_img"),
                job(JobState.SUCCEEDED, job_id="pred_img", progress=100, output="https://cdn.example.com/i.png"),
            ],
        )
        body = client.post("/api/generate-image", json={"prompt": "a red bicycle"}).json()
        assert body["status"] == "succeeded"
        assert body["output"] == "https://cdn.example.com/i.png"

    def test_transcribe_upload(self, client, pool):
        transcript = "data:text/plain;base64,aGVsbG8gd29ybGQ="
        hf = pool.prepare("huggingface", submit_results=[handle(transcript, ProviderId.HUGGINGFACE, JobKind.TRANSCRIPT)])
        response = client.post(
            "/api/transcribe",
            files={"file": ("clip.mp3", b"ID3audio", "audio/mpeg")},
            data={"provider": "huggingface"},
        )
        assert response.status_code == 200
        assert response.json()["text"] == "hello world"
        assert hf.submitted[0].audio_bytes == b"ID3audio"

    def test_transcribe_unsupported_provider(self, client):
        response = client.post("/api/transcribe", data={"provider": "fal", "audio_url": "https://x/a.mp3"})
        assert response.status_code == 400

    def _transcribe_with_status(self, client, pool, *statuses):
        pool.prepare(
            "replicate",
            submit_results=[handle("pred_t", kind=JobKind.TRANSCRIPT)],
            statuses=list(statuses),
        )
        return client.post("/api/transcribe", data={"provider": "replicate", "audio_url": "https://x/a.mp3"})

    def test_transcribe_timeout_maps_to_504(self, client, pool, settings):
        settings.ugc_poll_max_attempts = 1
        response = self._transcribe_with_status(client, pool, job(JobState.PROCESSING, job_id="pred_t"))
        assert response.status_code == 504
        assert response.json()["code"] == "timeout"

    def test_transcribe_provider_failure_maps_to_502(self, client, pool):
        response = self._transcribe_with_status(
            client, pool, job(JobState.FAILED, job_id="pred_t", error="replicate: model crashed", error_code="provider"),
        )
        assert response.status_code == 502
        assert response.json() == {"success": False, "error": "replicate: model crashed", "code": "provider"}

    def test_transcribe_canceled_maps_to_409(self, client, pool):
        response = self._transcribe_with_status(
            client, pool, job(JobState.CANCELED, job_id="pred_t", error="Prediction was canceled", error_code="canceled"),
        )
        assert response.status_code == 409
        assert response.json()["code"] == "canceled"

    def test_providers_report_availability(self, client):
        providers = {p["provider"]: p["available"] for p in client.get("/api/providers").json()}
        assert providers["replicate"] is True
        assert providers["huggingface"] is True

    def test_check_provider(self, client, settings):
        settings.fal_api_key = "short"
        body = client.get("/api/check-provider", params={"provider": "fal"}).json()
        assert body["available"] is False
        assert "FAL_API_KEY" in body["message"]


class TestHistoryRoutes:
    def _add(self, client, text="Script one"):
        response = client.post("/api/history", json={
            "artifact_url": "https://cdn.example.com/1.mp4", "source_text": text, "provider": "replicate",
        })
        assert response.status_code == 201
        return response.json()

    def test_add_list_and_favorite(self, client):
        item = self._add(client)
        assert [i["id"] for i in client.get("/api/history").json()] == [item["id"]]

        toggled = client.post(f"/api/history/{item['id']}/favorite").json()
        assert toggled == {"success": True, "is_favorite": True}
        assert len(client.get("/api/history", params={"favorites": True}).json()) == 1

    def test_favorite_unknown_video(self, client):
        assert client.post("/api/history/video_missing/favorite").json()["is_favorite"] is False

    def test_delete(self, client):
        item = self._add(client)
        assert client.delete(f"/api/history/{item['id']}").status_code == 200
        response = client.get(f"/api/history/{item['id']}")
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_analytics(self, client):
        self._add(client)
        data = client.get("/api/analytics").json()
        assert data["total_videos"] == 1
        assert data["success_rate"] == 100.0

    def test_collections(self, client):
        item = self._add(client)
        folder = client.post("/api/collections", json={"name": "Launch"}).json()
        assert client.post(f"/api/collections/{folder['id']}/videos/{item['id']}").status_code == 200
        videos = client.get(f"/api/collections/{folder['id']}/videos").json()
        assert [v["id"] for v in videos] == [item["id"]]

        renamed = client.patch(f"/api/collections/{folder['id']}", json={"name": "Launch week"}).json()
        assert renamed["name"] == "Launch week"
        assert client.post("/api/collections", json={"name": "  "}).status_code == 400
        assert client.get("/api/collections/collection_missing").status_code == 404


class TestBatchRoutes:
    def test_batch_uses_requested_speech_provider(self, client, pool):
        google = pool.prepare("google", submit_results=[handle(AUDIO, ProviderId.GOOGLE, JobKind.AUDIO)])
        pool.prepare(
            "replicate",
            submit_results=[handle("pred_a")],
            statuses=[job(JobState.SUCCEEDED, job_id="pred_a", progress=100, output="https://cdn.example.com/a.mp4")],
        )
        created = client.post("/api/batch", json={"texts": ["First product script"], "speech_provider": "google"}).json()

        assert client.get(f"/api/batch/{created['id']}").json()["completed_count"] == 1
        assert google.submitted[0].provider == ProviderId.GOOGLE
        assert "elevenlabs" not in pool.adapters

    def test_batch_runs_in_background(self, client, pool):
        pool.prepare("elevenlabs", submit_results=[
            handle(AUDIO, ProviderId.ELEVENLABS, JobKind.AUDIO) for _ in range(2)
        ])
        pool.prepare(
            "replicate",
            submit_results=[handle("pred_a"), handle("pred_b")],
            statuses=[
                job(JobState.SUCCEEDED, job_id="pred_a", progress=100, output="https://cdn.example.com/a.mp4"),
                job(JobState.FAILED, job_id="pred_b", error="Prediction failed", error_code="provider"),
            ],
        )
        response = client.post("/api/batch", json={"texts": ["First product script", "  ", "Second product script"]})
        assert response.status_code == 202
        created = response.json()
        assert created["total_count"] == 2
        assert created["state"] == "pending"

        final = client.get(f"/api/batch/{created['id']}").json()
        assert final["state"] == "completed"
        assert final["completed_count"] == 1
        assert final["failed_count"] == 1
        assert len(client.get("/api/history").json()) == 1

    def test_empty_batch_is_rejected(self, client):
        assert client.post("/api/batch", json={"texts": [" ", ""]}).status_code == 400

    def test_unknown_batch(self, client):
        assert client.get("/api/batch/batch_missing").status_code == 404


class TestMediaRoutes:
    def test_subtitles(self, client):
        body = client.post("/api/subtitles", json={"text": "Hello there", "duration": 8, "format": "vtt"}).json()
        assert body["content"].startswith("WEBVTT")
        assert len(body["entries"]) == 1

    def test_unknown_operation(self, client):
        response = client.post("/api/media/explode", json={"video_url": "https://x/v.mp4"})
        assert response.status_code == 404

    def test_invalid_parameters(self, client):
        response = client.post("/api/media/trim", json={"video_url": "https://x/v.mp4", "params": {"begin": 1}})
        assert response.status_code == 400

    def test_local_path_is_rejected(self, client, tmp_path, monkeypatch):
        secret = tmp_path / "secret.mp4"
        secret.write_bytes(b"private")
        ran = []
        monkeypatch.setattr(editing, "run_edit", ran.append)

        response = client.post("/api/media/thumbnail", json={"video_url": str(secret)})
        assert response.status_code == 400
        assert response.json()["code"] == "media"
        assert "data URI or an http" in response.json()["error"]
        assert ran == []

    def test_local_paths_cannot_be_enabled_through_params(self, client, tmp_path):
        response = client.post("/api/media/thumbnail", json={
            "video_url": str(tmp_path / "secret.mp4"), "params": {"allow_local": True},
        })
        assert response.status_code == 400


def test_templates_route(client):
    news = client.get("/api/templates", params={"category": "news"}).json()
    assert [t["id"] for t in news] == ["news-announcement"]


def test_ai_suggest_without_key(client):
    response = client.post("/api/ai-suggest", json={"prompt": SCRIPT, "model": "grok"})
    assert response.status_code == 401
