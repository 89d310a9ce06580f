"""OpenAI-compatible chat completions (OpenAI, Gemini, Grok, DeepSeek)."""

from typing import Any

from openai import APIError, APIStatusError, OpenAI, RateLimitError


class OpenAIProvider:
    """Chat completion against any OpenAI-compatible endpoint selected by ``base_url``."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        name: str = "openai",
        temperature: float = 0.7,
    ):
        self._client = OpenAI(api_key=api_key, base_url=base_url)
        self._model = model
        self._temperature = temperature
        self.name = name

    def complete(self, prompt: str, **kwargs: Any) -> str:
        try:
            response = self._client.chat.completions.create(
                model=kwargs.get("model") or self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=kwargs.get("temperature", self._temperature),
                **{k: v for k, v in kwargs.items() if k not in ("model", "temperature")},
            )
        except (RateLimitError, APIStatusError, APIError):
            # route handlers map status codes
            raise
        msg = response.choices[0].message
        return msg.content or ""
