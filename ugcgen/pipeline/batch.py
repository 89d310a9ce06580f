"""Sequential batch processing.

Items run strictly one after another with a pause in between so provider rate
limits hold. A failing item is marked as an error and the batch moves on.
"""

from __future__ import annotations

import logging

from ugcgen.history.batch import BatchTracker
from ugcgen.history.models import BatchItemState, BatchJob
from ugcgen.jobs.models import JobState, ProgressUpdate, VideoSettings
from ugcgen.pipeline.generate import VideoPipeline
from ugcgen.providers.errors import ProviderError
from ugcgen.validation import validate_text, validate_video_settings

logger = logging.getLogger(__name__)


class BatchRunner:
    def __init__(self, pipeline: VideoPipeline, tracker: BatchTracker, item_delay: float | None = None):
        self.pipeline = pipeline
        self.tracker = tracker
        self.item_delay = (
            pipeline.settings.ugc_batch_item_delay_seconds if item_delay is None else item_delay
        )

    async def process(
        self,
        job: BatchJob,
        voice_id: str | None = None,
        settings: VideoSettings | None = None,
    ) -> BatchJob:
        settings = settings or VideoSettings()
        validate_video_settings(settings)
        pending = [i for i in job.items if not i.state.is_terminal]
        logger.info("Processing batch %s: %d of %d items pending", job.id, len(pending), job.total_count)

        for n, item in enumerate(pending):
            if n > 0:
                await self.pipeline.sleep(self.item_delay)
            await self._process_item(job.id, item.id, item.text, voice_id, settings)

        final = self.tracker.get(job.id) or job
        logger.info(
            "Batch %s finished: %d completed, %d failed", job.id, final.completed_count, final.failed_count
        )
        return final

    async def _process_item(
        self,
        job_id: str,
        item_id: str,
        text: str,
        voice_id: str | None,
        settings: VideoSettings,
    ) -> None:
        def update(**patch: object) -> None:
            self.tracker.update_item(job_id, item_id, patch)

        try:
            text = validate_text(text)
            update(state=BatchItemState.GENERATING_AUDIO, progress=0)
            audio_url = await self.pipeline.synthesize_speech(text, voice_id)

            update(state=BatchItemState.GENERATING_VIDEO, progress=10, audio_url=audio_url)
            handle = await self.pipeline.submit_video(text, audio_url, settings)
            update(job_id=handle.id)

            def on_progress(progress: ProgressUpdate) -> None:
                if not progress.state.is_terminal:
                    update(progress=progress.progress)

            result = await self.pipeline.poll(handle, on_progress=on_progress)
        except ProviderError as e:
            logger.error("Batch item %s failed: %s", item_id, e.user_message)
            update(state=BatchItemState.ERROR, error=e.user_message)
            return
        except Exception as e:
            logger.exception("Batch item %s failed", item_id)
            update(state=BatchItemState.ERROR, error=str(e) or type(e).__name__)
            return

        if result.state == JobState.SUCCEEDED and result.output:
            update(state=BatchItemState.COMPLETED, progress=100, artifact_url=result.output)
            self.pipeline.record(result, text, settings, audio_url=audio_url, voice_id=voice_id)
        else:
            update(state=BatchItemState.ERROR, error=result.error or "Video generation failed")
