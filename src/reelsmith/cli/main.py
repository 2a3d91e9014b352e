from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import typer

from reelsmith.config.settings import Settings
from reelsmith.domain.job import Job
from reelsmith.domain.workspace import Workspace
from reelsmith.exceptions import ReelsmithError
from reelsmith.pipeline import Pipeline
from reelsmith.services.compose import ComposeService
from reelsmith.services.images import ManifestImageProvider
from reelsmith.services.segmentation import segment_transcript
from reelsmith.services.subtitles import compile_subtitle_track
from reelsmith.services.transcript import (
    load_words,
    normalize_words,
    segments_to_dicts,
    validate_words,
)
from reelsmith.styles import STYLES, StyleOptions, VideoStyle, get_style, list_styles, resolve_style
from reelsmith.utils.logging import configure_logging, get_logger

app = typer.Typer(add_completion=False)
log = get_logger(__name__)


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Turn domain errors into a one-line report and the error's exit code."""
    try:
        yield
    except ReelsmithError as err:
        typer.echo(f"{err.label()}: {err.message}", err=True)
        for path in getattr(err, "retained", None) or []:
            typer.echo(f"  kept: {path}", err=True)
        raise typer.Exit(code=err.exit_code or 1)


def _resolve_style(
    style_id: str | None,
    settings: Settings,
    *,
    pan: bool | None = None,
    karaoke: bool | None = None,
    highlight: str | None = None,
    box: bool | None = None,
) -> VideoStyle:
    base = get_style(style_id or settings.style)
    return resolve_style(
        base,
        StyleOptions(
            pan_effect=pan,
            karaoke=karaoke,
            highlight_color=highlight,
            highlight_box=box,
        ),
    )


def _collect_cli_overrides(**values: object) -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, bool):
            overrides[key] = "true" if value else "false"
        else:
            overrides[key] = str(value)
    return overrides


def _run_assemble_pipeline(
    *,
    settings: Settings,
    style: VideoStyle,
    words_path: Path,
    audio_path: Path,
    images_path: Path,
    output: Path | None = None,
    cli_overrides: dict[str, str] | None = None,
) -> tuple[Job, Workspace]:
    words = load_words(words_path)
    workspace = Workspace.create(settings.workdir)
    job = Job(
        settings=settings,
        workspace=workspace,
        style=style,
        cli_overrides=cli_overrides or {},
    )
    pipeline = Pipeline(
        images=ManifestImageProvider(images_path),
        compose=ComposeService(output_path=output),
    )
    job = pipeline.run(job, words=words, audio_path=audio_path)
    return job, workspace


def _resolve_workdir(workdir: str | None) -> Path:
    settings = Settings()
    return Path(workdir or settings.workdir).expanduser().resolve()


def _load_run_manifest(path: Path) -> dict | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        return None


def _list_runs(workdir: Path) -> list[Path]:
    if not workdir.exists():
        return []
    candidates = [
        run_dir
        for run_dir in workdir.iterdir()
        if run_dir.is_dir() and (run_dir / "run.json").exists()
    ]
    candidates.sort(key=lambda p: (p / "run.json").stat().st_mtime, reverse=True)
    return candidates


def _resolve_run_dir(workdir: Path, run_id: str) -> Path:
    if run_id == "latest":
        runs_list = _list_runs(workdir)
        if not runs_list:
            raise typer.BadParameter("No runs found.")
        return runs_list[0]
    return workdir / run_id


@app.command()
def config() -> None:
    """Print resolved config."""
    s = Settings()
    typer.echo(json.dumps(s.to_public_dict(), indent=2))


@app.command()
def styles() -> None:
    """List built-in style presets."""
    for style_id in list_styles():
        style = STYLES[style_id]
        typer.echo(f"{style.id}\t{style.segmentation}\t{style.description}")


@app.command()
def segment(
    words_json: Path = typer.Argument(..., help="Transcript words JSON file."),
    style: str = typer.Option(None, help="Style preset id (overrides config)."),
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Split a transcript into segments, persist them and print them as JSON."""
    settings = Settings()
    if workdir is not None:
        settings.workdir = workdir
    configure_logging(log_level or settings.log_level)

    with _reporting_errors():
        resolved = _resolve_style(style, settings)
        words = load_words(words_json)
        workspace = Workspace.create(settings.workdir)
        job = Job(settings=settings, workspace=workspace, style=resolved)
        artifact = Pipeline().segment(job, words)

    typer.echo(json.dumps(segments_to_dicts(artifact.segments), indent=2))
    typer.echo(f"Segments: {artifact.path}", err=True)
    typer.echo(f"Transcript: {artifact.transcript_path}", err=True)


@app.command()
def captions(
    words_json: Path = typer.Argument(..., help="Transcript words JSON file."),
    out: Path = typer.Option(..., help="Output .ass file."),
    style: str = typer.Option(None, help="Style preset id (overrides config)."),
    karaoke: bool = typer.Option(None, "--karaoke/--no-karaoke", help="Word-by-word highlighting."),
    highlight: str = typer.Option(None, help="Highlight color name (purple, yellow, ...)."),
    box: bool = typer.Option(None, "--box/--no-box", help="Draw a box behind the highlighted word."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
) -> None:
    """Compile an ASS subtitle track for a transcript."""
    settings = Settings()
    configure_logging(log_level or settings.log_level)

    with _reporting_errors():
        resolved = _resolve_style(style, settings, karaoke=karaoke, highlight=highlight, box=box)
        words = load_words(words_json)
        validate_words(words)
        normalized = normalize_words(words)
        segments = segment_transcript(
            normalized,
            resolved,
            word_count_tolerance=settings.word_count_tolerance,
        )
        out.parent.mkdir(parents=True, exist_ok=True)
        track = compile_subtitle_track(
            segments,
            normalized,
            resolved,
            out,
            width=settings.width,
            height=settings.height,
            tolerance_ms=settings.caption_timing_tolerance_ms,
        )

    mode = "karaoke" if track.karaoke else "static"
    typer.echo(f"Wrote {track.entry_count} {mode} dialogue lines -> {track.path}")


@app.command()
def assemble(
    words_json: Path = typer.Argument(..., help="Transcript words JSON file."),
    audio: Path = typer.Argument(..., help="Narration audio file."),
    images_json: Path = typer.Argument(..., help="Image manifest JSON (one image per segment)."),
    style: str = typer.Option(None, help="Style preset id (overrides config)."),
    pan: bool = typer.Option(None, "--pan/--no-pan", help="Vertical pan on each image."),
    karaoke: bool = typer.Option(None, "--karaoke/--no-karaoke", help="Word-by-word highlighting."),
    highlight: str = typer.Option(None, help="Highlight color name (purple, yellow, ...)."),
    chunk_size: int = typer.Option(None, help="Images per render chunk (overrides config)."),
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
    log_level: str = typer.Option(None, help="Log level (overrides config)."),
    output: Path = typer.Option(None, help="Final video path (defaults to the run directory)."),
) -> None:
    """Assemble a narrated video from words, audio and images."""
    settings = Settings()

    # Apply CLI overrides on top of env/.env settings
    if workdir is not None:
        settings.workdir = workdir
    if chunk_size is not None:
        settings.chunk_size = chunk_size

    # Configure logging after overrides so we use the final resolved level
    configure_logging(log_level or settings.log_level)

    cli_overrides = _collect_cli_overrides(
        style=style,
        pan=pan,
        karaoke=karaoke,
        highlight=highlight,
        chunk_size=chunk_size,
    )

    with _reporting_errors():
        resolved = _resolve_style(style, settings, pan=pan, karaoke=karaoke, highlight=highlight)
        job, workspace = _run_assemble_pipeline(
            settings=settings,
            style=resolved,
            words_path=words_json,
            audio_path=audio,
            images_path=images_json,
            output=output,
            cli_overrides=cli_overrides,
        )

    result = job.artifacts.result
    typer.echo(f"Done. run_id={workspace.run_id}")
    if result:
        typer.echo(f"Output: {result.video_path} ({result.duration_seconds:.2f}s, {result.chunk_count} chunk(s))")


@app.command()
def runs(
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
    limit: int = typer.Option(5, help="Limit number of runs shown."),
    json_output: bool = typer.Option(False, "--json", help="Output runs as JSON."),
) -> None:
    """List recent runs."""
    root = _resolve_workdir(workdir)
    runs_list = _list_runs(root)
    if limit is not None and limit > 0:
        runs_list = runs_list[:limit]

    rows = []
    for run_dir in runs_list:
        manifest = _load_run_manifest(run_dir / "run.json")
        if not manifest:
            continue
        video = (manifest.get("artifacts") or {}).get("video") or {}
        video_path = video.get("path") if isinstance(video, dict) else None
        rows.append(
            {
                "run_id": run_dir.name,
                "status": manifest.get("status", "n/a"),
                "started_at": manifest.get("started_at", "n/a"),
                "duration_seconds_total": manifest.get("duration_seconds_total"),
                "chunk_count": manifest.get("chunk_count"),
                "video_path": video_path,
                "video_present": bool(video_path and Path(video_path).exists()),
                "path": str(run_dir),
            }
        )

    if json_output:
        typer.echo(json.dumps(rows, indent=2))
        return

    typer.echo("run_id\tstatus\tstarted_at\tduration_s\tvideo_present\tpath")
    for row in rows:
        duration = row["duration_seconds_total"]
        duration_str = f"{duration:.2f}" if isinstance(duration, (float, int)) else "n/a"
        present = "true" if row["video_present"] else "false"
        typer.echo(
            f"{row['run_id']}\t{row['status']}\t{row['started_at']}\t{duration_str}\t{present}\t{row['path']}"
        )


@app.command()
def inspect(
    run_id: str = typer.Argument(..., help="Run id or 'latest'."),
    workdir: str = typer.Option(None, help="Workdir for outputs (overrides config)."),
) -> None:
    """Pretty-print run.json for a run."""
    root = _resolve_workdir(workdir)
    run_dir = _resolve_run_dir(root, run_id)

    manifest = _load_run_manifest(run_dir / "run.json")
    if manifest is None:
        raise typer.BadParameter(f"run.json not found for run_id '{run_dir.name}'.")
    typer.echo(json.dumps(manifest, indent=2))


def _main() -> None:
    app()


if __name__ == "__main__":
    _main()
