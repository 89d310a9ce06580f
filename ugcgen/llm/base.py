"""Abstract LLM provider protocol."""

from typing import Any, Protocol


class LLMProvider(Protocol):
    """Protocol for chat-completion backends used for text suggestions."""

    name: str

    def complete(self, prompt: str, **kwargs: Any) -> str:
        """Return raw text completion."""
        ...
