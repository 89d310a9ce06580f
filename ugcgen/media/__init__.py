"""Media editing (ffmpeg) and subtitles."""

from ugcgen.media.editing import MediaEditError, edit_video, merge_videos
from ugcgen.media.subtitles import SubtitleEntry, generate_subtitles, to_srt, to_vtt

__all__ = [
    "MediaEditError",
    "SubtitleEntry",
    "edit_video",
    "generate_subtitles",
    "merge_videos",
    "to_srt",
    "to_vtt",
]
