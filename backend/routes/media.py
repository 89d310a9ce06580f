"""Video editing and subtitles. Edits run ffmpeg on the server and return data URIs.

Routes are plain ``def`` so FastAPI runs the blocking ffmpeg calls in its threadpool.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from backend.deps import app_settings
from ugcgen.config import Settings
from ugcgen.media import editing
from ugcgen.media.subtitles import FORMATS, SubtitleEntry, generate_subtitles
from ugcgen.validation import estimate_video_duration

logger = logging.getLogger(__name__)
router = APIRouter()

# operation -> (graph builder, output suffix)
OPERATIONS: dict[str, tuple[Any, str]] = {
    "trim": (editing.build_trim, ".mp4"),
    "crop": (editing.build_crop, ".mp4"),
    "rotate": (editing.build_rotate, ".mp4"),
    "speed": (editing.build_speed, ".mp4"),
    "compress": (editing.build_compress, ".mp4"),
    "watermark": (editing.build_watermark, ".mp4"),
    "color-correction": (editing.build_color_correction, ".mp4"),
    "thumbnail": (editing.build_thumbnail, ".jpg"),
}


class EditRequest(BaseModel):
    video_url: str
    params: dict[str, Any] = Field(default_factory=dict)


class ConvertRequest(BaseModel):
    video_url: str
    format: Literal["mp4", "webm", "gif"] = "mp4"
    quality: Literal["low", "medium", "high"] = "medium"
    frame_rate: Optional[int] = Field(default=None, ge=1, le=60)
    width: Optional[int] = Field(default=None, gt=0)
    height: Optional[int] = Field(default=None, gt=0)


class MergeRequest(BaseModel):
    video_urls: list[str] = Field(..., min_length=2)
    with_audio: bool = False


class MediaResponse(BaseModel):
    success: bool = True
    output: str


class SubtitleRequest(BaseModel):
    text: str
    duration: Optional[float] = Field(default=None, gt=0)
    format: Literal["srt", "vtt"] = "srt"
    words_per_minute: int = Field(default=150, ge=60, le=300)


class SubtitleResponse(BaseModel):
    success: bool = True
    format: str
    content: str
    entries: list[SubtitleEntry]


@router.post("/media/convert", response_model=MediaResponse)
def convert(body: ConvertRequest, settings: Settings = Depends(app_settings)):
    output = editing.edit_video(
        editing.build_convert,
        body.video_url,
        settings.media_dir,
        suffix=f".{body.format}",
        fmt=body.format,
        quality=body.quality,
        frame_rate=body.frame_rate,
        width=body.width,
        height=body.height,
    )
    return MediaResponse(output=output)


@router.post("/media/merge", response_model=MediaResponse)
def merge(body: MergeRequest, settings: Settings = Depends(app_settings)):
    return MediaResponse(output=editing.merge_videos(body.video_urls, settings.media_dir, with_audio=body.with_audio))


@router.post("/media/{operation}", response_model=MediaResponse)
def edit(operation: str, body: EditRequest, settings: Settings = Depends(app_settings)):
    """Apply one edit: trim, crop, rotate, speed, compress, watermark, color-correction, thumbnail."""
    if operation not in OPERATIONS:
        raise HTTPException(status_code=404, detail=f"Unknown media operation: {operation}")
    builder, suffix = OPERATIONS[operation]
    try:
        inspect.signature(builder).bind("input", "output", **body.params)
    except TypeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid parameters for {operation}: {e}")
    output = editing.edit_video(builder, body.video_url, settings.media_dir, suffix=suffix, **body.params)
    logger.info("Media %s produced %d bytes", operation, editing.data_uri_size(output))
    return MediaResponse(output=output)


@router.post("/subtitles", response_model=SubtitleResponse)
def subtitles(body: SubtitleRequest):
    duration = body.duration or estimate_video_duration(body.text)
    entries = generate_subtitles(body.text, duration, body.words_per_minute)
    return SubtitleResponse(format=body.format, content=FORMATS[body.format](entries), entries=entries)
