"""Generation jobs: canonical job model and the poller that drives jobs to a terminal state."""

from ugcgen.jobs.models import (
    GenerationJob,
    GenerationRequest,
    JobHandle,
    JobKind,
    JobState,
    ProgressUpdate,
    ProviderId,
    VideoSettings,
)
from ugcgen.jobs.poller import JobPoller, PollHandle, start_polling

__all__ = [
    "GenerationJob",
    "GenerationRequest",
    "JobHandle",
    "JobKind",
    "JobPoller",
    "JobState",
    "PollHandle",
    "ProgressUpdate",
    "ProviderId",
    "VideoSettings",
    "start_polling",
]
