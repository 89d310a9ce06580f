"""Video editing on top of ffmpeg-python.

``build_*`` functions only assemble an ffmpeg graph for an input and output path;
``run_edit`` executes one and ``edit_video`` wraps the whole round trip from an
artifact reference (URL, data URI, or a local path when allowed) to a data URI.
"""

from __future__ import annotations

import logging
import mimetypes
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Any, Callable, Literal

import ffmpeg
import httpx

from ugcgen.providers.http import decode_data_uri, to_data_uri

logger = logging.getLogger(__name__)

Quality = Literal["low", "medium", "high"]
OutputFormat = Literal["mp4", "webm", "gif"]

QUALITY_SETTINGS: dict[str, dict[str, Any]] = {
    "low": {"crf": 28, "preset": "fast"},
    "medium": {"crf": 23, "preset": "medium"},
    "high": {"crf": 18, "preset": "slow"},
}
COMPRESSION_SCALE = {"low": "1280:720", "medium": "1920:1080"}
WATERMARK_POSITIONS = {
    "top-left": ("{m}", "{m}"),
    "top-right": ("w-tw-{m}", "{m}"),
    "bottom-left": ("{m}", "h-th-{m}"),
    "bottom-right": ("w-tw-{m}", "h-th-{m}"),
    "center": ("(w-tw)/2", "(h-th)/2"),
}
# mp4 written for streaming
_MP4_OPTIONS = {"vcodec": "libx264", "acodec": "aac", "movflags": "frag_keyframe+empty_moov"}


class MediaEditError(Exception):
    """An edit was rejected or ffmpeg failed."""


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _with_audio(stream: Any, output_path: str, **kwargs: Any) -> Any:
    """Output a filtered video stream, carrying the source audio over if it has any."""
    return ffmpeg.output(stream, output_path, map="0:a?", **{**_MP4_OPTIONS, **kwargs})


# ---------------------------------------------------------------------------
# Graph builders
# ---------------------------------------------------------------------------

def build_trim(input_path: str, output_path: str, start: float, end: float) -> Any:
    if start < 0 or end <= start:
        raise MediaEditError("End time must be after start time")
    source = ffmpeg.input(input_path, ss=start, t=end - start)
    return source.output(output_path, preset="fast", crf=23, **_MP4_OPTIONS)


def build_crop(input_path: str, output_path: str, x: int, y: int, width: int, height: int) -> Any:
    if width <= 0 or height <= 0:
        raise MediaEditError("Width and height must be positive")
    source = ffmpeg.input(input_path)
    video = source.video.filter("crop", width, height, max(x, 0), max(y, 0))
    return _with_audio(video, output_path, crf=23)


def build_rotate(input_path: str, output_path: str, degrees: int) -> Any:
    source = ffmpeg.input(input_path)
    if degrees == 90:
        video = source.video.filter("transpose", 1)
    elif degrees == 180:
        video = source.video.filter("transpose", 1).filter("transpose", 1)
    elif degrees == 270:
        video = source.video.filter("transpose", 2)
    else:
        raise MediaEditError("Rotation must be 90, 180 or 270 degrees")
    return _with_audio(video, output_path, crf=23)


def _atempo_chain(stream: Any, speed: float) -> Any:
    # atempo accepts 0.5-2.0 per instance
    while speed > 2.0:
        stream = stream.filter("atempo", 2.0)
        speed /= 2.0
    while speed < 0.5:
        stream = stream.filter("atempo", 0.5)
        speed /= 0.5
    return stream.filter("atempo", round(speed, 4))


def build_speed(input_path: str, output_path: str, speed: float, has_audio: bool = True) -> Any:
    speed = _clamp(speed, 0.25, 4.0)
    source = ffmpeg.input(input_path)
    video = source.video.filter("setpts", f"PTS/{speed}")
    if not has_audio:
        return ffmpeg.output(video, output_path, crf=23, vcodec="libx264", movflags=_MP4_OPTIONS["movflags"])
    audio = _atempo_chain(source.audio, speed)
    return ffmpeg.output(video, audio, output_path, crf=23, **_MP4_OPTIONS)


def build_convert(
    input_path: str,
    output_path: str,
    fmt: OutputFormat = "mp4",
    quality: Quality = "medium",
    frame_rate: int | None = None,
    width: int | None = None,
    height: int | None = None,
) -> Any:
    if quality not in QUALITY_SETTINGS:
        raise MediaEditError(f"Invalid quality: {quality}")
    settings = QUALITY_SETTINGS[quality]
    source = ffmpeg.input(input_path)
    video = source.video
    if frame_rate:
        video = video.filter("fps", fps=frame_rate)
    if width or height:
        video = video.filter("scale", width or -2, height or -2)

    if fmt == "gif":
        if not frame_rate:
            video = video.filter("fps", fps=10)
        return ffmpeg.output(video, output_path, format="gif")
    if fmt == "webm":
        return ffmpeg.output(
            video, output_path, map="0:a?", vcodec="libvpx-vp9", acodec="libopus", crf=settings["crf"], **{"b:v": 0}
        )
    if fmt == "mp4":
        return _with_audio(video, output_path, crf=settings["crf"], preset=settings["preset"])
    raise MediaEditError(f"Unsupported format: {fmt}")


def build_compress(input_path: str, output_path: str, quality: Quality = "medium") -> Any:
    if quality not in QUALITY_SETTINGS:
        raise MediaEditError(f"Invalid quality: {quality}")
    crf = {"low": 32, "medium": 28, "high": 23}[quality]
    source = ffmpeg.input(input_path)
    video = source.video
    if quality in COMPRESSION_SCALE:
        w, h = COMPRESSION_SCALE[quality].split(":")
        video = video.filter("scale", w, h, force_original_aspect_ratio="decrease")
    return _with_audio(video, output_path, crf=crf, preset=QUALITY_SETTINGS[quality]["preset"])


def build_watermark(
    input_path: str,
    output_path: str,
    text: str,
    position: str = "bottom-right",
    opacity: float = 0.7,
    font_size: int = 24,
    margin: int = 10,
) -> Any:
    if not text.strip():
        raise MediaEditError("Watermark text is required")
    if position not in WATERMARK_POSITIONS:
        raise MediaEditError(f"Invalid watermark position: {position}")
    x, y = (p.format(m=margin) for p in WATERMARK_POSITIONS[position])
    source = ffmpeg.input(input_path)
    video = source.video.drawtext(
        text=text,
        x=x,
        y=y,
        fontsize=font_size,
        fontcolor=f"white@{_clamp(opacity, 0.0, 1.0):g}",
        box=1,
        boxcolor=f"black@{_clamp(opacity, 0.0, 1.0) / 2:g}",
    )
    return _with_audio(video, output_path, crf=23)


def build_color_correction(
    input_path: str,
    output_path: str,
    brightness: float = 0,
    contrast: float = 0,
    saturation: float = 0,
    gamma: float = 0,
    temperature: float = 0,
) -> Any:
    """Adjustments range from -100 to 100 with 0 meaning unchanged."""
    brightness, contrast, saturation, gamma, temperature = (
        _clamp(v, -100, 100) for v in (brightness, contrast, saturation, gamma, temperature)
    )
    source = ffmpeg.input(input_path)
    video = source.video.filter(
        "eq",
        brightness=brightness / 100,
        contrast=(contrast + 100) / 100,
        saturation=(saturation + 100) / 100,
        gamma=1 + gamma / 100 * 0.9,
    )
    if temperature:
        shift = temperature / 100 * 0.3
        video = video.filter("colorbalance", rm=shift, bm=-shift)
    return _with_audio(video, output_path, crf=23)


def build_thumbnail(input_path: str, output_path: str, at: float = 1.0, width: int | None = None) -> Any:
    stream = ffmpeg.input(input_path, ss=max(at, 0)).video
    if width:
        stream = stream.filter("scale", width, -2)
    return ffmpeg.output(stream, output_path, vframes=1, format="image2")


def build_merge(input_paths: list[str], output_path: str, with_audio: bool = False) -> Any:
    if len(input_paths) < 2:
        raise MediaEditError("At least two videos are required to merge")
    sources = [ffmpeg.input(p) for p in input_paths]
    if with_audio:
        streams = [s for src in sources for s in (src.video, src.audio)]
        joined = ffmpeg.concat(*streams, v=1, a=1).node
        return ffmpeg.output(joined[0], joined[1], output_path, **_MP4_OPTIONS)
    joined = ffmpeg.concat(*sources, v=1, a=0).node
    return ffmpeg.output(joined[0], output_path, vcodec="libx264")


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def run_edit(stream: Any) -> None:
    logger.debug("ffmpeg %s", " ".join(ffmpeg.get_args(stream)))
    try:
        stream.run(overwrite_output=True, capture_stdout=True, capture_stderr=True)
    except ffmpeg.Error as e:
        details = e.stderr.decode("utf8", errors="replace") if e.stderr else "Unknown FFmpeg error"
        logger.error("FFmpeg failed: %s", details)
        raise MediaEditError(f"FFmpeg failed: {details.strip().splitlines()[-1] if details.strip() else details}") from e
    except FileNotFoundError as e:
        raise MediaEditError("FFmpeg is not installed on the server") from e


def fetch_source(
    source: str,
    workdir: Path,
    client: httpx.Client | None = None,
    allow_local: bool = False,
) -> Path:
    """Materialize an artifact reference as a local file inside ``workdir``.

    Local paths are only read when ``allow_local`` is set; HTTP callers pass data URIs or URLs.
    """
    if source.startswith("data:"):
        header = source.split(",", 1)[0]
        mime = header[5:].split(";", 1)[0] or "video/mp4"
        try:
            content = decode_data_uri(source)
        except ValueError as e:
            raise MediaEditError(f"Malformed data URI: {e}") from e
        path = workdir / f"{uuid.uuid4().hex}{mimetypes.guess_extension(mime) or '.mp4'}"
        path.write_bytes(content)
        return path
    if source.startswith(("http://", "https://")):
        path = workdir / f"{uuid.uuid4().hex}{Path(httpx.URL(source).path).suffix or '.mp4'}"
        owns = client is None
        client = client or httpx.Client(timeout=120, follow_redirects=True)
        try:
            response = client.get(source)
            if response.status_code >= 400:
                raise MediaEditError(f"Failed to download video: HTTP {response.status_code}")
            path.write_bytes(response.content)
        except httpx.HTTPError as e:
            raise MediaEditError(f"Failed to download video: {e}") from e
        finally:
            if owns:
                client.close()
        return path
    if not allow_local:
        raise MediaEditError("Video source must be a data URI or an http(s) URL")
    path = Path(source)
    if not path.is_file():
        raise MediaEditError(f"Video not found: {source}")
    return path


OUTPUT_TYPES = {".mp4": "video/mp4", ".webm": "video/webm", ".gif": "image/gif", ".jpg": "image/jpeg"}


def edit_video(
    builder: Callable[..., Any],
    source: str,
    workdir: Path,
    suffix: str = ".mp4",
    client: httpx.Client | None = None,
    allow_local: bool = False,
    **params: Any,
) -> str:
    """Apply one edit and return the result as a data URI."""
    workdir.mkdir(parents=True, exist_ok=True)
    scratch = Path(tempfile.mkdtemp(dir=workdir))
    try:
        input_path = fetch_source(source, scratch, client, allow_local)
        output_path = scratch / f"output{suffix}"
        run_edit(builder(str(input_path), str(output_path), **params))
        return to_data_uri(output_path.read_bytes(), OUTPUT_TYPES.get(suffix, "application/octet-stream"))
    finally:
        shutil.rmtree(scratch, ignore_errors=True)


def merge_videos(
    sources: list[str],
    workdir: Path,
    with_audio: bool = False,
    client: httpx.Client | None = None,
    allow_local: bool = False,
) -> str:
    workdir.mkdir(parents=True, exist_ok=True)
    scratch = Path(tempfile.mkdtemp(dir=workdir))
    try:
        paths = [str(fetch_source(s, scratch, client, allow_local)) for s in sources]
        output_path = scratch / "merged.mp4"
        run_edit(build_merge(paths, str(output_path), with_audio=with_audio))
        return to_data_uri(output_path.read_bytes(), "video/mp4")
    finally:
        shutil.rmtree(scratch, ignore_errors=True)


def data_uri_size(uri: str) -> int:
    """Decoded size of a base64 data URI, without decoding it."""
    payload = uri.split(",", 1)[-1]
    return len(payload) * 3 // 4 - payload.count("=")

