"""Tests for AI text suggestions (no network: the LLM is a stub)."""

import pytest

from ugcgen.llm import AI_MODELS, OpenAIProvider, get_provider
from ugcgen.llm.suggest import generate_text_suggestion, generate_thumbnail_description, generate_video_summary
from ugcgen.providers.errors import AuthError, ValidationError


class StubLLM:
    name = "stub"

    def __init__(self, reply: str):
        self.reply = reply
        self.prompts: list[str] = []

    def complete(self, prompt: str, **kwargs) -> str:
        self.prompts.append(prompt)
        return self.reply


def test_suggestion_strips_wrapping_quotes():
    llm = StubLLM('  "Grab yours today!"  ')
    assert generate_text_suggestion(llm, "Buy our blender") == "Grab yours today!"
    assert 'Current text: "Buy our blender"' in llm.prompts[0]


def test_suggestion_with_context():
    llm = StubLLM("ok")
    generate_text_suggestion(llm, "Buy our blender", context="Audience: students")
    assert llm.prompts[0].startswith("Context: Audience: students\n\nTask: ")


def test_summary_and_thumbnail():
    assert generate_video_summary(StubLLM(" A quick demo. \n"), "demo") == "A quick demo."
    llm = StubLLM("A blender on a kitchen counter")
    assert generate_thumbnail_description(llm, "demo") == "A blender on a kitchen counter"
    assert "thumbnail" in llm.prompts[0]


class TestGetProvider:
    def test_unknown_model(self, settings):
        with pytest.raises(ValidationError):
            get_provider("llama", settings)

    def test_missing_key(self, settings):
        with pytest.raises(AuthError, match="DEEPSEEK_API_KEY"):
            get_provider("deepseek", settings)

    def test_default_from_settings(self, settings):
        settings.gemini_api_key = "gm-test-key"
        provider = get_provider(settings=settings)
        assert isinstance(provider, OpenAIProvider)
        assert provider.name == "gemini"

    def test_every_model_has_a_settings_field(self, settings):
        for field, _, _ in AI_MODELS.values():
            assert hasattr(settings, field)
