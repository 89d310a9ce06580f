"""Generation pipeline: single videos and sequential batches."""

from ugcgen.pipeline.batch import BatchRunner
from ugcgen.pipeline.generate import VideoPipeline, build_video_prompt, generate_video

__all__ = ["BatchRunner", "VideoPipeline", "build_video_prompt", "generate_video"]
