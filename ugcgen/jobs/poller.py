"""Job poller: drives a job handle to a terminal state.

One status query at a time, a fixed interval between queries, the first query
immediately. Polling stops on the first terminal observation, on the attempt or
wall-clock cap, on any status-query failure, or when the caller cancels.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable

from ugcgen.jobs.models import (
    GenerationJob,
    JobHandle,
    JobState,
    ProgressUpdate,
    progress_update_for,
    succeeded_job,
)
from ugcgen.providers.errors import JobTimeoutError, ProviderError

logger = logging.getLogger(__name__)

StatusCheck = Callable[[str], Awaitable[GenerationJob]]
ProgressCallback = Callable[[ProgressUpdate], Any]
Sleep = Callable[[float], Awaitable[None]]
Clock = Callable[[], float]

DEFAULT_INTERVAL = 3.0
DEFAULT_MAX_ATTEMPTS = 200
DEFAULT_TIMEOUT = 600.0


class JobPoller:
    """Poll a single job. ``transitions()`` yields every observation; ``run()`` returns the last one."""

    def __init__(
        self,
        handle: JobHandle,
        check_status: StatusCheck,
        on_progress: ProgressCallback | None = None,
        interval: float = DEFAULT_INTERVAL,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        timeout: float = DEFAULT_TIMEOUT,
        sleep: Sleep = asyncio.sleep,
        clock: Clock = time.monotonic,
    ):
        self.handle = handle
        self._check_status = check_status
        self._on_progress = on_progress
        self._interval = interval
        self._max_attempts = max_attempts
        self._timeout = timeout
        self._sleep = sleep
        self._clock = clock
        self.attempts = 0
        self.last: GenerationJob | None = None

    async def transitions(self) -> AsyncIterator[GenerationJob]:
        if self.handle.immediate:
            job = succeeded_job(self.handle.id, self.handle.provider, self.handle.kind)
            await self._observe(job)
            yield job
            return

        started = self._clock()
        progress = 0
        while True:
            elapsed = self._clock() - started
            if self.attempts >= self._max_attempts or elapsed >= self._timeout:
                job = self._failed(
                    JobTimeoutError(
                        f"job {self.handle.id} did not finish after {self.attempts} status checks "
                        f"in {elapsed:.0f} seconds (limits: {self._max_attempts} checks, {self._timeout:g} seconds)",
                        provider=self.handle.provider.value,
                        remedy="Try again later or choose a different provider",
                    )
                )
                logger.error("Polling timed out for %s", self.handle.id)
                await self._observe(job)
                yield job
                return

            self.attempts += 1
            try:
                job = await self._check_status(self.handle.id)
            except asyncio.CancelledError:
                raise
            except ProviderError as e:
                logger.error("Status check failed for %s: %s", self.handle.id, e.user_message)
                job = self._failed(e)
            except Exception as e:
                logger.exception("Status check failed for %s", self.handle.id)
                job = self._failed(e, code="status_check")

            update: dict[str, Any] = {"kind": self.handle.kind}
            if not job.is_terminal:
                progress = max(progress, job.progress)
                update["progress"] = progress
            job = job.model_copy(update=update)

            await self._observe(job)
            yield job
            if job.is_terminal:
                return
            await self._sleep(self._interval)

    async def run(self) -> GenerationJob:
        async for job in self.transitions():
            pass
        assert self.last is not None
        return self.last

    def canceled(self) -> GenerationJob:
        """The job as seen by a caller that stopped polling."""
        return GenerationJob(
            id=self.last.id if self.last else self.handle.id,
            provider=self.handle.provider,
            kind=self.handle.kind,
            state=JobState.CANCELED,
            progress=self.last.progress if self.last else 0,
            error="Polling was canceled",
            error_code="canceled",
        )

    async def _observe(self, job: GenerationJob) -> None:
        self.last = job
        if self._on_progress is None:
            return
        result = self._on_progress(progress_update_for(job))
        if inspect.isawaitable(result):
            await result

    def _failed(self, error: Exception, code: str | None = None) -> GenerationJob:
        message = error.user_message if isinstance(error, ProviderError) else str(error) or type(error).__name__
        return GenerationJob(
            id=self.last.id if self.last else self.handle.id,
            provider=self.handle.provider,
            kind=self.handle.kind,
            state=JobState.FAILED,
            progress=self.last.progress if self.last and not self.last.is_terminal else 0,
            error=message,
            error_code=code or getattr(error, "code", "provider"),
        )


class PollHandle:
    """Owner-side handle for a running poll. ``cancel()`` stops it; nothing fires afterwards."""

    def __init__(self, poller: JobPoller, task: asyncio.Task):
        self.poller = poller
        self._task = task

    @property
    def done(self) -> bool:
        return self._task.done()

    def cancel(self) -> None:
        if not self._task.done():
            logger.info("Polling canceled for %s", self.poller.handle.id)
            self._task.cancel()

    async def result(self) -> GenerationJob:
        try:
            return await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise
            return self.poller.canceled()


def start_polling(
    handle: JobHandle,
    check_status: StatusCheck,
    on_progress: ProgressCallback | None = None,
    **kwargs: Any,
) -> PollHandle:
    """Schedule a poller on the running event loop and return its handle."""
    poller = JobPoller(handle, check_status, on_progress=on_progress, **kwargs)
    task = asyncio.get_running_loop().create_task(poller.run())
    return PollHandle(poller, task)
