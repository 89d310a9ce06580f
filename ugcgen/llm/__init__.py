"""LLM adapter layer: OpenAI-compatible endpoints for Gemini, Grok, DeepSeek and OpenAI."""

from ugcgen.config import Settings, get_settings
from ugcgen.llm.base import LLMProvider
from ugcgen.llm.openai_provider import OpenAIProvider
from ugcgen.providers.errors import AuthError, ValidationError

# name -> (settings field, base_url, default model)
AI_MODELS: dict[str, tuple[str, str | None, str]] = {
    "gemini": ("gemini_api_key", "https://generativelanguage.googleapis.com/v1beta/openai/", "gemini-2.0-flash"),
    "grok": ("grok_api_key", "https://api.x.ai/v1", "grok-beta"),
    "deepseek": ("deepseek_api_key", "https://api.deepseek.com/v1", "deepseek-chat"),
    "openai": ("openai_api_key", None, "gpt-4o-mini"),
}


def get_provider(provider_name: str | None = None, settings: Settings | None = None, **kwargs: object) -> LLMProvider:
    """Return the configured suggestion provider. provider_name: gemini | grok | deepseek | openai."""
    settings = settings or get_settings()
    name = (provider_name or settings.ugc_suggest_provider).lower()
    if name not in AI_MODELS:
        raise ValidationError(f"Unsupported AI model: {name}. Choose one of: {', '.join(AI_MODELS)}")
    field, base_url, model = AI_MODELS[name]
    api_key = getattr(settings, field)
    if not api_key:
        raise AuthError(
            f"{field.upper()} is not set in environment variables",
            provider=name,
            remedy=f"Add {field.upper()} to your .env file",
        )
    return OpenAIProvider(api_key=api_key, model=model, base_url=base_url, name=name, **kwargs)


__all__ = ["AI_MODELS", "LLMProvider", "OpenAIProvider", "get_provider"]
