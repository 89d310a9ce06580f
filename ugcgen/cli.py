"""CLI entry-point: generate UGC videos and manage history."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ugcgen.analytics import calculate_analytics, format_duration, format_storage
from ugcgen.config import get_settings
from ugcgen.history import get_batch_tracker, get_history_tracker
from ugcgen.jobs.models import JobKind, JobState, ProgressUpdate, VideoSettings
from ugcgen.llm import get_provider
from ugcgen.llm.suggest import generate_text_suggestion, generate_thumbnail_description, generate_video_summary
from ugcgen.media.subtitles import FORMATS, generate_subtitles
from ugcgen.pipeline import BatchRunner, VideoPipeline, generate_video
from ugcgen.providers import ProviderError, get_adapter
from ugcgen.providers.registry import require_kind
from ugcgen.templates import get_template, get_templates
from ugcgen.validation import estimate_video_duration

app = typer.Typer(help="AI UGC video generator")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.ugc_log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _settings_from(template: str | None, duration: int | None, resolution: str | None, style: str | None) -> VideoSettings:
    base = VideoSettings()
    if template:
        preset = get_template(template)
        if preset is None:
            raise typer.BadParameter(f"Unknown template: {template}")
        base = preset.settings
    return base.model_copy(
        update={
            k: v
            for k, v in {"duration": duration, "resolution": resolution, "style": style}.items()
            if v is not None
        }
    )


@app.command()
def generate(
    text: str = typer.Argument(..., help="Script the influencer should say"),
    provider: str = typer.Option("replicate", help="Video provider: replicate | fal | huggingface"),
    voice: str | None = typer.Option(None, help="Voice id (ElevenLabs) or voice name (Google)"),
    speech: str | None = typer.Option(None, help="Speech provider: elevenlabs | google"),
    template: str | None = typer.Option(None, help="Template id (see `templates`)"),
    duration: int | None = typer.Option(None, help="Duration in seconds: 5, 8, 15 or 30"),
    resolution: str | None = typer.Option(None, help="720p | 1080p | 4K"),
    style: str | None = typer.Option(None, help="professional | friendly | energetic | calm | dramatic"),
    model: str | None = typer.Option(None, help="Provider model id override"),
):
    """Generate speech, then a video, poll it to completion and save it to history."""
    console = Console()
    settings = _settings_from(template, duration, resolution, style)

    def show(update: ProgressUpdate) -> None:
        console.print(f"[dim]{update.progress:3d}%[/dim] {update.message}")

    try:
        job = asyncio.run(
            generate_video(
                text,
                provider=provider,
                voice_id=voice,
                settings=settings,
                model=model,
                on_progress=show,
                speech_provider=speech,
            )
        )
    except ProviderError as e:
        console.print(f"[red]Error: {e.user_message}[/red]")
        raise typer.Exit(1)

    if job.state != JobState.SUCCEEDED:
        console.print(f"[red]Generation {job.state.value}: {job.error}[/red]")
        raise typer.Exit(1)
    console.print(f"Video: {job.output}")
    console.print("[green]Done.[/green]")


@app.command()
def status(
    job_id: str = typer.Argument(..., help="Prediction / request id"),
    provider: str = typer.Option("replicate", help="replicate | fal | huggingface"),
    model: str | None = typer.Option(None, help="Fal model id the request was submitted to"),
):
    """Check a generation job once."""
    console = Console()

    async def check():
        adapter = get_adapter(provider)
        try:
            return await adapter.check_status(job_id, model)
        finally:
            await adapter.aclose()

    try:
        job = asyncio.run(check())
    except ProviderError as e:
        console.print(f"[red]Error: {e.user_message}[/red]")
        raise typer.Exit(1)
    console.print(f"{job.id}: {job.state.value} ({job.progress}%)")
    if job.output:
        console.print(f"Output: {job.output}")
    if job.error:
        console.print(f"[red]{job.error}[/red]")


@app.command()
def batch(
    prompts_file: Path = typer.Argument(..., help="Text file with one prompt per line"),
    provider: str = typer.Option("replicate", help="Video provider"),
    voice: str | None = typer.Option(None, help="Voice id (ElevenLabs) or voice name (Google)"),
    speech: str | None = typer.Option(None, help="Speech provider: elevenlabs | google"),
    template: str | None = typer.Option(None, help="Template id"),
):
    """Generate one video per line, sequentially."""
    console = Console()
    if not prompts_file.is_file():
        console.print(f"[red]Error: file not found: {prompts_file}[/red]")
        raise typer.Exit(1)
    texts = [line for line in prompts_file.read_text(encoding="utf-8").splitlines() if line.strip()]
    if not texts:
        console.print("[red]Error: no prompts in file[/red]")
        raise typer.Exit(1)

    app_settings = get_settings()
    try:
        speech_provider = require_kind(speech or app_settings.ugc_speech_provider, JobKind.AUDIO)
    except ProviderError as e:
        console.print(f"[red]Error: {e.user_message}[/red]")
        raise typer.Exit(1)
    tracker = get_batch_tracker(app_settings)
    job = tracker.create(texts, provider=provider)
    console.print(f"Batch {job.id}: {job.total_count} items")

    async def run():
        audio = get_adapter(speech_provider, app_settings)
        video = get_adapter(provider, app_settings)
        pipeline = VideoPipeline(audio, video, history=get_history_tracker(app_settings), settings=app_settings)
        try:
            return await BatchRunner(pipeline, tracker).process(
                job, voice_id=voice, settings=_settings_from(template, None, None, None)
            )
        finally:
            await audio.aclose()
            await video.aclose()

    final = asyncio.run(run())
    for item in final.items:
        colour = "green" if item.state.value == "completed" else "red"
        console.print(f"[{colour}]{item.state.value}[/{colour}] {item.text[:60]} {item.artifact_url or item.error or ''}")
    console.print(f"Completed {final.completed_count}, failed {final.failed_count}")


@app.command()
def history(
    favorites: bool = typer.Option(False, "--favorites", help="Only favorites"),
    stats: bool = typer.Option(False, "--stats", help="Show analytics summary"),
):
    """List generated videos, newest first."""
    console = Console()
    tracker = get_history_tracker()
    items = tracker.list_favorites() if favorites else tracker.list_all()

    table = Table("id", "created", "fav", "provider", "text")
    for item in items:
        table.add_row(
            item.id,
            item.created_at.strftime("%Y-%m-%d %H:%M"),
            "★" if item.is_favorite else "",
            item.provider or "",
            item.source_text[:50],
        )
    console.print(table)

    if stats:
        data = calculate_analytics(tracker.list_all(), get_batch_tracker().list_all())
        console.print(
            f"{data.total_videos} videos, {format_duration(data.total_duration)}, "
            f"~{format_storage(data.total_storage)}, success rate {data.success_rate}%"
        )


@app.command()
def favorite(video_id: str = typer.Argument(..., help="History item id")):
    """Toggle the favorite flag of a history item."""
    console = Console()
    tracker = get_history_tracker()
    if tracker.get(video_id) is None:
        console.print(f"[red]Error: video not found: {video_id}[/red]")
        raise typer.Exit(1)
    state = tracker.toggle_favorite(video_id)
    console.print("Added to favorites" if state else "Removed from favorites")


@app.command()
def templates():
    """List video templates."""
    console = Console()
    table = Table("id", "category", "duration", "resolution", "style", "description")
    for t in get_templates():
        table.add_row(t.id, t.category, f"{t.settings.duration}s", t.settings.resolution, t.settings.style, t.description)
    console.print(table)


@app.command()
def suggest(
    text: str = typer.Argument(..., help="Current script"),
    kind: str = typer.Option("text", help="text | summary | thumbnail"),
    model: str | None = typer.Option(None, help="gemini | grok | deepseek | openai (default from env)"),
    context: str | None = typer.Option(None, help="Extra context for script suggestions"),
):
    """Ask an LLM to improve a script, summarize it or describe a thumbnail."""
    console = Console()
    try:
        llm = get_provider(model)
        if kind == "summary":
            result = generate_video_summary(llm, text)
        elif kind == "thumbnail":
            result = generate_thumbnail_description(llm, text)
        else:
            result = generate_text_suggestion(llm, text, context)
    except ProviderError as e:
        console.print(f"[red]Error: {e.user_message}[/red]")
        raise typer.Exit(1)
    console.print(result)


@app.command()
def subtitles(
    text: str = typer.Argument(..., help="Spoken text"),
    duration: float | None = typer.Option(None, help="Video duration in seconds (estimated when omitted)"),
    format: str = typer.Option("srt", help="srt | vtt"),
    out: Path | None = typer.Option(None, "--out", help="Write to file instead of stdout"),
):
    """Generate timed subtitles for a script."""
    console = Console()
    if format not in FORMATS:
        console.print(f"[red]Error: unsupported format: {format}[/red]")
        raise typer.Exit(1)
    entries = generate_subtitles(text, duration or estimate_video_duration(text))
    rendered = FORMATS[format](entries)
    if out:
        out.write_text(rendered, encoding="utf-8")
        console.print(f"Wrote {out}")
    else:
        console.print(rendered, markup=False)


if __name__ == "__main__":
    app()
