"""AI text suggestions and video templates."""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from openai import APIError, APIStatusError, RateLimitError
from pydantic import BaseModel

from backend.deps import app_settings
from ugcgen.config import Settings
from ugcgen.llm import get_provider
from ugcgen.llm.suggest import generate_text_suggestion, generate_thumbnail_description, generate_video_summary
from ugcgen.templates import VideoTemplate, get_templates, templates_by_category
from ugcgen.validation import validate_text

logger = logging.getLogger(__name__)
router = APIRouter()


class SuggestRequest(BaseModel):
    prompt: str
    model: Optional[Literal["gemini", "grok", "deepseek", "openai"]] = None
    type: Literal["text", "summary", "thumbnail"] = "text"
    context: Optional[str] = None


class SuggestResponse(BaseModel):
    success: bool = True
    suggestion: str
    model: str


@router.post("/ai-suggest", response_model=SuggestResponse)
def ai_suggest(body: SuggestRequest, settings: Settings = Depends(app_settings)):
    text = validate_text(body.prompt, min_length=1)
    llm = get_provider(body.model, settings)
    try:
        if body.type == "summary":
            suggestion = generate_video_summary(llm, text)
        elif body.type == "thumbnail":
            suggestion = generate_thumbnail_description(llm, text)
        else:
            suggestion = generate_text_suggestion(llm, text, body.context)
    except RateLimitError:
        raise HTTPException(status_code=429, detail=f"{llm.name} rate limit exceeded. Try again shortly.")
    except APIStatusError as e:
        logger.error("AI suggestion failed (%s): %s", llm.name, e)
        raise HTTPException(status_code=502, detail=f"{llm.name} API error: {e.status_code}")
    except APIError as e:
        logger.error("AI suggestion failed (%s): %s", llm.name, e)
        raise HTTPException(status_code=502, detail=f"{llm.name} API error: {e}")
    return SuggestResponse(suggestion=suggestion, model=llm.name)


@router.get("/templates", response_model=list[VideoTemplate])
async def templates(category: Optional[str] = None):
    return templates_by_category(category) if category else list(get_templates())
