"""Script suggestions, video summaries and thumbnail descriptions."""

from __future__ import annotations

import logging
import re

from ugcgen.llm.base import LLMProvider

logger = logging.getLogger(__name__)

_WRAPPING_QUOTES = re.compile(r"^[\"']|[\"']$")

SUGGESTION_PROMPT = """You are a creative content writer. Based on the following text, suggest an improved or alternative version that would work well for a short video script (5-30 seconds). Keep it engaging, clear, and suitable for an influencer-style video.

Current text: "{text}"

Provide only the improved text, without any explanations or additional commentary."""

SUMMARY_PROMPT = """Create a brief, engaging summary (2-3 sentences) of the following video content. Make it compelling and suitable for social media sharing.

Video content: "{text}"

Provide only the summary text, without any explanations."""

THUMBNAIL_PROMPT = """Based on the following video content, suggest a brief visual description for a thumbnail image. The description should be clear, visual, and suitable for generating an image.

Video content: "{text}"

Provide only a short visual description (1-2 sentences), without any explanations."""


def _with_context(prompt: str, context: str | None) -> str:
    return f"Context: {context}\n\nTask: {prompt}" if context else prompt


def generate_text_suggestion(llm: LLMProvider, text: str, context: str | None = None) -> str:
    prompt = _with_context(SUGGESTION_PROMPT.format(text=text), context)
    result = llm.complete(prompt)
    logger.debug("Suggestion from %s: %d chars", llm.name, len(result))
    return _WRAPPING_QUOTES.sub("", result.strip())


def generate_video_summary(llm: LLMProvider, text: str) -> str:
    return llm.complete(SUMMARY_PROMPT.format(text=text)).strip()


def generate_thumbnail_description(llm: LLMProvider, text: str) -> str:
    return llm.complete(THUMBNAIL_PROMPT.format(text=text)).strip()

