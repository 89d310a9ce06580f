"""Tests for input validation and sanitization."""

import pytest

from ugcgen.jobs.models import GenerationRequest, JobKind, ProviderId, VideoSettings
from ugcgen.providers.errors import ValidationError
from ugcgen.validation import (
    estimate_video_duration,
    is_valid_voice_id,
    sanitize_text,
    validate_generation_request,
    validate_text,
    validate_video_settings,
)


class TestText:
    def test_sanitize_collapses_whitespace_and_control_chars(self):
        assert sanitize_text("  hello\t\x07 there\n\nfriend ") == "hello there friend"

    @pytest.mark.parametrize("text", [None, "", "   \n\t "])
    def test_empty_is_rejected(self, text):
        with pytest.raises(ValidationError):
            validate_text(text)

    def test_too_short(self):
        with pytest.raises(ValidationError, match="at least 10"):
            validate_text("short")

    def test_too_long(self):
        with pytest.raises(ValidationError):
            validate_text("a" * 5001)

    @pytest.mark.parametrize("text", [
        "<script>alert(1)</script> buy now",
        "click javascript:alert(1) please",
        "<img onerror=alert(1)> buy it",
    ])
    def test_harmful_content_is_rejected(self, text):
        with pytest.raises(ValidationError):
            validate_text(text)

    def test_valid_text_is_returned_sanitized(self):
        assert validate_text("Check out   this product!") == "Check out this product!"


class TestVoiceId:
    def test_missing_is_allowed(self):
        assert is_valid_voice_id(None)

    def test_valid(self):
        assert is_valid_voice_id("21m00Tcm4TlvDq8ikWAM")
        assert is_valid_voice_id("EXAVITQu4vr4xnSDxMaL")

    @pytest.mark.parametrize("voice_id", ["abc", "21m00Tcm4TlvDq8ikWAM-", "a" * 22])
    def test_invalid(self, voice_id):
        assert not is_valid_voice_id(voice_id)


class TestVideoSettings:
    def test_defaults_are_valid(self):
        validate_video_settings(VideoSettings())
        validate_video_settings(None)

    def test_invalid_duration(self):
        with pytest.raises(ValidationError, match="duration"):
            validate_video_settings(VideoSettings(duration=12))

    def test_invalid_style(self):
        with pytest.raises(ValidationError, match="style"):
            validate_video_settings(VideoSettings(style="spooky"))


class TestGenerationRequest:
    def test_transcription_requires_audio(self):
        request = GenerationRequest(text="", provider=ProviderId.REPLICATE, kind=JobKind.TRANSCRIPT)
        with pytest.raises(ValidationError):
            validate_generation_request(request)

    def test_transcription_with_audio_url(self):
        request = GenerationRequest(
            text="", kind=JobKind.TRANSCRIPT, reference_audio_url="https://cdn.example.com/a.mp3"
        )
        assert validate_generation_request(request) is request

    def test_short_prompts_are_allowed(self):
        assert validate_generation_request(GenerationRequest(text=" cat ")).text == "cat"


@pytest.mark.parametrize("words,expected", [(1, 5), (25, 10), (200, 30)])
def test_estimate_video_duration(words, expected):
    assert estimate_video_duration(" ".join(["word"] * words)) == expected
