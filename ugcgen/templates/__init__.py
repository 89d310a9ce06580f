"""Video presets bundled as YAML."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel

from ugcgen.jobs.models import VideoSettings

TEMPLATES_PATH = Path(__file__).resolve().parent / "video_templates.yaml"

Category = Literal["product", "education", "news", "social", "marketing", "entertainment"]


class VideoTemplate(BaseModel):
    id: str
    name: str
    description: str
    category: Category
    icon: str = ""
    settings: VideoSettings
    style_prompt: str
    example_text: str | None = None


def load_templates(path: str | Path | None = None) -> list[VideoTemplate]:
    """Load templates from a YAML file (a list, or a mapping with a ``templates`` key)."""
    path = Path(path) if path else TEMPLATES_PATH
    if not path.exists():
        raise FileNotFoundError(f"Template YAML not found: {path}")
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if isinstance(data, dict):
        data = data.get("templates", [])
    return [VideoTemplate.model_validate(t) for t in data or [] if isinstance(t, dict)]


@lru_cache(maxsize=1)
def get_templates() -> tuple[VideoTemplate, ...]:
    return tuple(load_templates())


def get_template(template_id: str) -> VideoTemplate | None:
    return next((t for t in get_templates() if t.id == template_id), None)


def templates_by_category(category: str) -> list[VideoTemplate]:
    return [t for t in get_templates() if t.category == category]


def categories() -> list[str]:
    return list(dict.fromkeys(t.category for t in get_templates()))
