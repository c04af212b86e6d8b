from __future__ import annotations

import json
from pathlib import Path

import typer

from captionburn.config.settings import Settings
from captionburn.domain.job import JobState
from captionburn.domain.timed_text import SubtitleStyle, parse_segments
from captionburn.exceptions import CaptionBurnError, ValidationError
from captionburn.formats import encode, get_format
from captionburn.services.render import RenderRequest, RenderService
from captionburn.utils.doctor import run_doctor
from captionburn.utils.logging import configure_logging, get_logger

app = typer.Typer(add_completion=False)
log = get_logger(__name__)


def _load_json_file(path: Path, what: str):
    if not path.exists():
        raise typer.BadParameter(f"{what} file not found: {path}")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValidationError(f"{what} file is not valid JSON: {exc.msg} (line {exc.lineno}).") from exc


def _load_segments(path: Path):
    data = _load_json_file(path, "Segments")
    # accept either a bare list or a transcription payload {"segments": [...]}
    if isinstance(data, dict) and "segments" in data:
        data = data["segments"]
    return parse_segments(data)


def _load_style(path: Path | None) -> SubtitleStyle:
    if path is None:
        return SubtitleStyle()
    return SubtitleStyle.from_dict(_load_json_file(path, "Style"))


def _report_error(exc: CaptionBurnError) -> None:
    typer.echo(f"{exc.label()}: {exc.message}", err=True)
    if exc.detail:
        typer.echo(exc.detail, err=True)
    raise typer.Exit(code=exc.exit_code)


@app.command()
def config() -> None:
    """Print resolved config."""
    s = Settings()
    typer.echo(json.dumps(s.to_public_dict(), indent=2))


@app.command()
def doctor() -> None:
    """Run environment diagnostics."""
    settings = Settings()
    code = run_doctor(settings)
    raise typer.Exit(code=code)


@app.command()
def export(
    segments: Path = typer.Argument(..., help="Segments JSON file."),
    fmt: str = typer.Option("srt", "--format", "-f", help="Subtitle format: srt, vtt, ass."),
    style: Path = typer.Option(None, help="Style JSON file (used by ass)."),
    out: Path = typer.Option(None, "--out", "-o", help="Output file (defaults to stdout)."),
) -> None:
    """Write segments as SRT, VTT or ASS markup."""
    try:
        subtitle_format = get_format(fmt)
        markup = encode(subtitle_format.name, _load_segments(segments), _load_style(style))
    except CaptionBurnError as exc:
        _report_error(exc)
        return

    if out is None:
        typer.echo(markup, nl=False)
        return
    out.write_text(markup, encoding="utf-8")
    typer.echo(f"Wrote {subtitle_format.name.upper()}: {out}")


@app.command()
def render(
    video: Path = typer.Argument(..., help="Source video file."),
    segments: Path = typer.Option(..., help="Segments JSON file."),
    style: Path = typer.Option(None, help="Style JSON file (defaults apply when omitted)."),
    out: Path = typer.Option(Path("video-with-captions.mp4"), "--out", "-o", help="Output MP4 path."),
    workdir: str = typer.Option(None, help="Workspace root (overrides config)."),
    timeout: float = typer.Option(None, help="Encode timeout in seconds (overrides config)."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Burn captions into a video."""
    settings = Settings()
    if workdir is not None:
        settings.workdir = workdir
    if timeout is not None:
        settings.encode_timeout_seconds = timeout

    effective_level = log_level or settings.log_level
    configure_logging(effective_level)

    if not video.exists():
        raise typer.BadParameter(f"Video not found: {video}")

    def _progress(job_id: str, state: JobState) -> None:
        log.info("job %s -> %s", job_id, state.value)

    try:
        request = RenderRequest(
            video=video.read_bytes(),
            filename=video.name,
            segments=_load_segments(segments),
            style=_load_style(style),
            enabled=True,
        )
        result = RenderService(settings).render(request, on_progress=_progress)
    except CaptionBurnError as exc:
        _report_error(exc)
        return

    out.write_bytes(result.content)
    typer.echo(f"✅ Done. job_id={result.job_id}")
    typer.echo(f"📦 Output: {out}")


@app.command()
def serve(
    host: str = typer.Option(None, help="Bind address (overrides config)."),
    port: int = typer.Option(None, help="Port (overrides config)."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from captionburn.web.server import create_app

    settings = Settings()
    effective_level = log_level or settings.log_level
    configure_logging(effective_level)

    uvicorn.run(
        create_app(settings),
        host=host or settings.host,
        port=port or settings.port,
        log_level=effective_level.lower(),
    )


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
