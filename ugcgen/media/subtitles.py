"""Subtitle timing from plain text, rendered as SRT or WebVTT."""

from __future__ import annotations

import math

from pydantic import BaseModel

WORDS_PER_MINUTE = 150
TARGET_CUE_SECONDS = 2.5


class SubtitleEntry(BaseModel):
    start: float
    end: float
    text: str


def generate_subtitles(
    text: str,
    duration: float,
    words_per_minute: int = WORDS_PER_MINUTE,
) -> list[SubtitleEntry]:
    """Split ``text`` into cues of roughly 2.5 s spoken at ``words_per_minute``, never past ``duration``."""
    words = text.split()
    if not words or duration <= 0:
        return []
    words_per_second = words_per_minute / 60
    per_cue = max(1, math.ceil(words_per_second * TARGET_CUE_SECONDS))

    entries: list[SubtitleEntry] = []
    now = 0.0
    for i in range(0, len(words), per_cue):
        if now >= duration:
            break
        chunk = words[i : i + per_cue]
        end = min(now + len(chunk) / words_per_second, duration)
        entries.append(SubtitleEntry(start=now, end=end, text=" ".join(chunk)))
        now = end
    return entries


def _timestamp(seconds: float, separator: str) -> str:
    millis = int(round(seconds * 1000))
    hours, millis = divmod(millis, 3_600_000)
    minutes, millis = divmod(millis, 60_000)
    secs, millis = divmod(millis, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}{separator}{millis:03d}"


def to_srt(entries: list[SubtitleEntry]) -> str:
    return "\n".join(
        f"{n}\n{_timestamp(e.start, ',')} --> {_timestamp(e.end, ',')}\n{e.text}\n"
        for n, e in enumerate(entries, start=1)
    )


def to_vtt(entries: list[SubtitleEntry]) -> str:
    cues = "\n".join(
        f"{_timestamp(e.start, '.')} --> {_timestamp(e.end, '.')}\n{e.text}\n" for e in entries
    )
    return f"WEBVTT\n\n{cues}"


FORMATS = {"srt": to_srt, "vtt": to_vtt}
