"""Tests for the job poller: immediate handles, terminal stop, caps, failures and cancellation."""

import asyncio

from conftest import handle, job
from ugcgen.jobs import JobPoller, start_polling
from ugcgen.jobs.models import JobKind, JobState, ProviderId
from ugcgen.providers.errors import AuthError


class ScriptedStatus:
    """Status callable returning scripted observations; the last one repeats."""

    def __init__(self, *observations):
        self.observations = list(observations)
        self.calls = 0

    async def __call__(self, job_id):
        self.calls += 1
        result = self.observations[min(self.calls, len(self.observations)) - 1]
        if isinstance(result, Exception):
            raise result
        return result


def _poller(h, check, fake_time, **kwargs):
    kwargs.setdefault("interval", 3.0)
    return JobPoller(h, check, sleep=fake_time.sleep, clock=fake_time.clock, **kwargs)


class TestImmediateHandle:
    def test_artifact_handle_succeeds_without_status_queries(self, fake_time):
        check = ScriptedStatus(job(JobState.PROCESSING))
        updates = []
        h = handle("https://cdn.example.com/video.mp4")
        result = asyncio.run(_poller(h, check, fake_time, on_progress=updates.append).run())

        assert result.state == JobState.SUCCEEDED
        assert result.output == "https://cdn.example.com/video.mp4"
        assert result.progress == 100
        assert check.calls == 0
        assert len(updates) == 1
        assert fake_time.sleeps == []

    def test_data_uri_handle_is_immediate(self, fake_time):
        check = ScriptedStatus()
        h = handle("data:audio/mpeg;base64,AAAA", ProviderId.ELEVENLABS, JobKind.AUDIO)
        result = asyncio.run(_poller(h, check, fake_time).run())
        assert result.state == JobState.SUCCEEDED
        assert result.kind == JobKind.AUDIO


class TestPolling:
    def test_first_query_is_immediate_and_stops_on_terminal(self, fake_time):
        check = ScriptedStatus(
            job(JobState.STARTING, progress=10),
            job(JobState.PROCESSING, progress=50),
            job(JobState.SUCCEEDED, progress=100, output="https://cdn.example.com/v.mp4"),
            job(JobState.PROCESSING),
        )
        updates = []
        result = asyncio.run(_poller(handle(), check, fake_time, on_progress=updates.append).run())

        assert result.state == JobState.SUCCEEDED
        assert result.output == "https://cdn.example.com/v.mp4"
        assert check.calls == 3
        # no sleep before the first query, none after the terminal one
        assert fake_time.sleeps == [3.0, 3.0]
        assert [u.state for u in updates] == [JobState.STARTING, JobState.PROCESSING, JobState.SUCCEEDED]
        assert updates[-1].message == "Ready!"

    def test_transitions_yield_every_observation(self, fake_time):
        check = ScriptedStatus(
            job(JobState.STARTING),
            job(JobState.FAILED, error="NSFW content detected", error_code="provider"),
        )

        async def collect():
            return [j async for j in _poller(handle(), check, fake_time).transitions()]

        seen = asyncio.run(collect())
        assert [j.state for j in seen] == [JobState.STARTING, JobState.FAILED]
        assert seen[-1].error == "NSFW content detected"

    def test_progress_never_decreases(self, fake_time):
        check = ScriptedStatus(
            job(JobState.PROCESSING, progress=60),
            job(JobState.PROCESSING, progress=40),
            job(JobState.PROCESSING, progress=70),
            job(JobState.SUCCEEDED, progress=100, output="https://cdn.example.com/v.mp4"),
        )
        updates = []
        asyncio.run(_poller(handle(), check, fake_time, on_progress=updates.append).run())
        assert [u.progress for u in updates] == [60, 60, 70, 100]

    def test_async_progress_callback_is_awaited(self, fake_time):
        check = ScriptedStatus(job(JobState.SUCCEEDED, progress=100, output="https://x.example/v.mp4"))
        seen = []

        async def on_progress(update):
            seen.append(update.state)

        asyncio.run(_poller(handle(), check, fake_time, on_progress=on_progress).run())
        assert seen == [JobState.SUCCEEDED]


class TestCaps:
    def test_attempt_cap_fails_with_timeout(self, fake_time):
        check = ScriptedStatus(job(JobState.PROCESSING, progress=50))
        poller = _poller(handle(), check, fake_time, max_attempts=3, timeout=1000)
        result = asyncio.run(poller.run())

        assert check.calls == 3
        assert result.state == JobState.FAILED
        assert result.error_code == "timeout"
        assert result.output is None
        assert "after 3 status checks" in result.error
        assert "within" not in result.error

    def test_wall_clock_cap_fails_with_timeout(self, fake_time):
        check = ScriptedStatus(job(JobState.PROCESSING))
        poller = _poller(handle(), check, fake_time, max_attempts=1000, timeout=10)
        result = asyncio.run(poller.run())

        # queries at t=0, 3, 6 and 9; the cap is hit at t=12
        assert check.calls == 4
        assert result.state == JobState.FAILED
        assert result.error_code == "timeout"
        assert "after 4 status checks in 12 seconds" in result.error


class TestStatusFailures:
    def test_provider_error_fails_job_without_retry(self, fake_time):
        check = ScriptedStatus(
            job(JobState.PROCESSING),
            AuthError("invalid or missing API credential (HTTP 401)", provider="replicate"),
            job(JobState.SUCCEEDED, output="https://x.example/v.mp4"),
        )
        result = asyncio.run(_poller(handle(), check, fake_time).run())

        assert check.calls == 2
        assert result.state == JobState.FAILED
        assert result.error_code == "auth"
        assert "replicate" in result.error

    def test_unexpected_error_fails_job(self, fake_time):
        check = ScriptedStatus(KeyError("status"))
        result = asyncio.run(_poller(handle(), check, fake_time).run())
        assert result.state == JobState.FAILED
        assert result.error_code == "status_check"


def test_cancel_stops_polling_and_callbacks():
    """After cancel() no further status query or progress callback happens."""
    check = ScriptedStatus(job(JobState.PROCESSING, progress=30))
    updates = []

    async def scenario():
        parked = asyncio.Event()

        async def park(seconds):
            parked.set()
            await asyncio.Event().wait()

        poll = start_polling(handle(), check, on_progress=updates.append, sleep=park)
        await parked.wait()
        poll.cancel()
        result = await poll.result()
        await asyncio.sleep(0)
        return poll, result

    poll, result = asyncio.run(scenario())
    assert poll.done
    assert result.state == JobState.CANCELED
    assert result.error_code == "canceled"
    assert result.progress == 30
    assert check.calls == 1
    assert len(updates) == 1


class TestJobKind:
    def test_terminal_observation_keeps_handle_kind(self, fake_time):
        check = ScriptedStatus(
            job(JobState.PROCESSING, job_id="pred_t"),
            job(JobState.SUCCEEDED, job_id="pred_t", progress=100, output="data:text/plain;base64,aGk="),
        )
        result = asyncio.run(_poller(handle("pred_t", kind=JobKind.TRANSCRIPT), check, fake_time).run())

        assert result.state == JobState.SUCCEEDED
        assert result.kind == JobKind.TRANSCRIPT

    def test_failed_observation_keeps_handle_kind(self, fake_time):
        check = ScriptedStatus(job(JobState.FAILED, error="NSFW content detected", error_code="provider"))
        result = asyncio.run(_poller(handle(kind=JobKind.IMAGE), check, fake_time).run())

        assert result.kind == JobKind.IMAGE
        assert result.error_code == "provider"
