"""Usage analytics derived from history and batch jobs."""

from __future__ import annotations

from collections import Counter
from datetime import date, timedelta

from pydantic import BaseModel, Field

from ugcgen.history.models import BatchJob, HistoryItem
from ugcgen.jobs.models import utcnow

DEFAULT_DURATION = 8
# Rough bitrate estimates by resolution, MB per second
MB_PER_SECOND = {"720p": 0.5, "1080p": 1.0, "4K": 3.0}


class DayCount(BaseModel):
    date: str
    count: int
    duration: int = 0


class ProviderCount(BaseModel):
    provider: str
    count: int


class AnalyticsData(BaseModel):
    total_videos: int = 0
    total_duration: int = 0
    total_storage: int = 0
    videos_by_day: list[DayCount] = Field(default_factory=list)
    videos_by_provider: list[ProviderCount] = Field(default_factory=list)
    favorites: int = 0
    success_rate: float = 100.0


def _duration(item: HistoryItem) -> int:
    return item.settings.duration if item.settings else DEFAULT_DURATION


def _estimated_bytes(item: HistoryItem) -> int:
    resolution = item.settings.resolution if item.settings else "1080p"
    return int(_duration(item) * MB_PER_SECOND.get(resolution, 1.0) * 1024 * 1024)


def calculate_analytics(
    history: list[HistoryItem],
    batch_jobs: list[BatchJob] | None = None,
    today: date | None = None,
    days: int = 30,
) -> AnalyticsData:
    batch_jobs = batch_jobs or []
    today = today or utcnow().date()

    by_day: dict[date, list[HistoryItem]] = {}
    for item in history:
        by_day.setdefault(item.created_at.date(), []).append(item)
    series = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        items = by_day.get(day, [])
        series.append(
            DayCount(date=day.isoformat(), count=len(items), duration=sum(_duration(i) for i in items))
        )

    providers = Counter(item.provider or "unknown" for item in history)
    # batch successes are already in history; only batch failures add attempts
    attempts = len(history) + sum(j.failed_count for j in batch_jobs)
    success_rate = 100.0 if attempts == 0 else round(len(history) / attempts * 100, 1)

    return AnalyticsData(
        total_videos=len(history),
        total_duration=sum(_duration(i) for i in history),
        total_storage=sum(_estimated_bytes(i) for i in history),
        videos_by_day=series,
        videos_by_provider=[ProviderCount(provider=p, count=c) for p, c in providers.most_common()],
        favorites=sum(1 for i in history if i.is_favorite),
        success_rate=success_rate,
    )


def format_duration(seconds: int) -> str:
    hours, rem = divmod(int(seconds), 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def format_storage(num_bytes: float) -> str:
    units = ["B", "KB", "MB", "GB", "TB"]
    size = float(num_bytes)
    unit = 0
    while size >= 1024 and unit < len(units) - 1:
        size /= 1024
        unit += 1
    return f"{size:.2f} {units[unit]}"
