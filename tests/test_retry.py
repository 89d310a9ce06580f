"""Tests for the job-creation retry policy and model fallback."""

import asyncio

import pytest

from conftest import FakeAdapter, handle
from ugcgen.jobs.models import GenerationRequest, ProviderId
from ugcgen.providers.errors import AuthError, NotFoundError, RateLimitError, TransientError, ValidationError
from ugcgen.providers.retry import submit_with_model_fallback, submit_with_retries

REQUEST = GenerationRequest(text="Check out this amazing new product!", provider=ProviderId.REPLICATE)


def _rate_limited(retry_after=5.0):
    return RateLimitError("rate limit exceeded", provider="replicate", retry_after=retry_after)


class TestSubmitWithRetries:
    def test_rate_limits_exhaust_retries(self, fake_time):
        """Four consecutive 429s: the original call plus three retries, then the error surfaces."""
        adapter = FakeAdapter(submit_results=[_rate_limited() for _ in range(5)])
        with pytest.raises(RateLimitError):
            asyncio.run(submit_with_retries(adapter, REQUEST, max_retries=3, sleep=fake_time.sleep))
        assert len(adapter.submitted) == 4
        assert fake_time.sleeps == [5.0, 5.0, 5.0]

    def test_succeeds_after_rate_limit(self, fake_time):
        adapter = FakeAdapter(submit_results=[_rate_limited(12), handle("pred_9")])
        result = asyncio.run(submit_with_retries(adapter, REQUEST, sleep=fake_time.sleep))
        assert result.id == "pred_9"
        assert fake_time.sleeps == [12]

    def test_transient_error_uses_default_delay(self, fake_time):
        adapter = FakeAdapter(submit_results=[TransientError("service unavailable"), handle()])
        asyncio.run(
            submit_with_retries(adapter, REQUEST, default_retry_after=7.0, sleep=fake_time.sleep)
        )
        assert fake_time.sleeps == [7.0]

    def test_auth_error_is_not_retried(self, fake_time):
        adapter = FakeAdapter(submit_results=[AuthError("missing key"), handle()])
        with pytest.raises(AuthError):
            asyncio.run(submit_with_retries(adapter, REQUEST, sleep=fake_time.sleep))
        assert len(adapter.submitted) == 1
        assert fake_time.sleeps == []

    def test_invalid_input_never_reaches_adapter(self, fake_time):
        adapter = FakeAdapter(submit_results=[handle()])
        with pytest.raises(ValidationError):
            asyncio.run(
                submit_with_retries(adapter, REQUEST.model_copy(update={"text": "   "}), sleep=fake_time.sleep)
            )
        assert adapter.submitted == []

    def test_text_is_sanitized_before_submit(self, fake_time):
        adapter = FakeAdapter(submit_results=[handle()])
        request = REQUEST.model_copy(update={"text": "  Hello\x00   world  "})
        asyncio.run(submit_with_retries(adapter, request, sleep=fake_time.sleep))
        assert adapter.submitted[0].text == "Hello world"


class TestModelFallback:
    def test_moves_to_next_model_on_not_found(self, fake_time):
        adapter = FakeAdapter(
            provider_name="huggingface",
            submit_results=[NotFoundError("gone"), handle("https://x.example/v.mp4")],
        )
        result = asyncio.run(
            submit_with_model_fallback(adapter, REQUEST, ["model/a", "model/b"], sleep=fake_time.sleep)
        )
        assert result.immediate
        assert [r.model for r in adapter.submitted] == ["model/a", "model/b"]

    def test_requested_model_is_tried_first(self, fake_time):
        adapter = FakeAdapter(submit_results=[handle()])
        request = REQUEST.model_copy(update={"model": "model/custom"})
        asyncio.run(submit_with_model_fallback(adapter, request, ["model/a"], sleep=fake_time.sleep))
        assert adapter.submitted[0].model == "model/custom"

    def test_all_models_missing_raises_not_found(self, fake_time):
        adapter = FakeAdapter(submit_results=[NotFoundError("gone"), NotFoundError("gone")])
        with pytest.raises(NotFoundError):
            asyncio.run(
                submit_with_model_fallback(adapter, REQUEST, ["model/a", "model/b"], sleep=fake_time.sleep)
            )
        assert len(adapter.submitted) == 2

    def test_other_errors_do_not_fall_back(self, fake_time):
        adapter = FakeAdapter(submit_results=[AuthError("bad key"), handle()])
        with pytest.raises(AuthError):
            asyncio.run(
                submit_with_model_fallback(adapter, REQUEST, ["model/a", "model/b"], sleep=fake_time.sleep)
            )
        assert len(adapter.submitted) == 1
