from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Sequence

from reelsmith.exceptions import EncoderError, EncoderMemoryError
from reelsmith.utils.checks import require_binary

if TYPE_CHECKING:
    from reelsmith.domain.models import RenderableImage
    from reelsmith.services.render_graph import RenderGraph

# 137 = shell-reported SIGKILL (OOM killer), -9 = same signal via subprocess.
DEFAULT_MEMORY_EXIT_CODES = (137, -9)
STDERR_TAIL_LINES = 20


def ensure_ffmpeg() -> None:
    require_binary("ffmpeg")


def escape_filter_path(value: str) -> str:
    r"""Quote a path for use as a filter option inside -filter_complex.

    Two parsers unescape it: the option parser (`\`, `'`, `:`) and,
    before that, the graph parser, which keeps single-quoted text verbatim.
    """
    option = value.replace("\\", "\\\\").replace("'", "\\'").replace(":", "\\:")
    return "'" + option.replace("'", "'\\''") + "'"


def _base_cmd() -> list[str]:
    return [
        "ffmpeg",
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
    ]


def build_render_cmd(
    images: Sequence[RenderableImage],
    audio: str | Path,
    graph: RenderGraph,
    out: str | Path,
    *,
    audio_offset_seconds: float | None = None,
    audio_duration_seconds: float | None = None,
    crf: int = 23,
    preset: str = "veryfast",
    threads: int = 2,
    max_muxing_queue_size: int = 1024,
    audio_bitrate: str = "192k",
) -> list[str]:
    """
    Build one encoder invocation.

    Each image becomes a looped input limited to its on-screen duration.
    The audio input is optionally sliced to a chunk's absolute window.
    """
    cmd = _base_cmd()
    for image in images:
        cmd += [
            "-loop",
            "1",
            "-t",
            f"{image.duration_seconds:.3f}",
            "-i",
            str(image.path),
        ]

    if audio_offset_seconds is not None:
        cmd += ["-ss", f"{audio_offset_seconds:.3f}"]
    if audio_duration_seconds is not None:
        cmd += ["-t", f"{audio_duration_seconds:.3f}"]
    cmd += ["-i", str(audio)]

    cmd += [
        "-filter_complex",
        graph.filter_complex,
        "-map",
        graph.output_map,
        "-map",
        f"{len(images)}:a",
        "-c:v",
        "libx264",
        "-preset",
        preset,
        "-crf",
        str(crf),
        "-threads",
        str(threads),
        "-max_muxing_queue_size",
        str(max_muxing_queue_size),
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        "aac",
        "-b:a",
        audio_bitrate,
        "-shortest",
        str(out),
    ]
    return cmd


def write_concat_list(chunks: Iterable[Path], list_path: Path) -> Path:
    """
    Write a concat-demuxer list.

    Entries are bare file names; the demuxer resolves them against the
    list file's own directory, so chunks must live next to the list.
    """
    lines = []
    for chunk in chunks:
        name = chunk.name.replace("'", r"'\''")
        lines.append(f"file '{name}'")
    list_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return list_path


def build_concat_cmd(list_path: str | Path, out: str | Path) -> list[str]:
    return _base_cmd() + [
        "-f",
        "concat",
        "-safe",
        "0",
        "-i",
        str(list_path),
        "-c",
        "copy",
        str(out),
    ]


def _stderr_tail(stderr: str | None) -> str:
    lines = (stderr or "").strip().splitlines()
    return "\n".join(lines[-STDERR_TAIL_LINES:])


def run_ffmpeg(
    cmd: list[str],
    *,
    stderr_path: Path | None = None,
    memory_exit_codes: Sequence[int] = DEFAULT_MEMORY_EXIT_CODES,
) -> subprocess.CompletedProcess[str]:
    proc = subprocess.run(cmd, capture_output=True, text=True)
    if stderr_path is not None:
        stderr_path.write_text(proc.stderr or "", encoding="utf-8")
    if proc.returncode != 0:
        tail = _stderr_tail(proc.stderr)
        if proc.returncode in memory_exit_codes:
            raise EncoderMemoryError(
                f"ffmpeg ran out of memory (exit code {proc.returncode}). "
                "Lower REELSMITH_CHUNK_SIZE (or --chunk-size) to render fewer images per chunk.",
                returncode=proc.returncode,
                stderr=tail,
            )
        raise EncoderError(
            f"ffmpeg exited with code {proc.returncode}.\nSTDERR:\n{tail}",
            returncode=proc.returncode,
            stderr=tail,
        )
    return proc


def probe_duration(path: str | Path) -> float | None:
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        return None
    proc = subprocess.run(
        [
            ffprobe,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=noprint_wrappers=1:nokey=1",
            str(path),
        ],
        capture_output=True,
        text=True,
    )
    if proc.returncode != 0:
        return None
    try:
        return float(proc.stdout.strip())
    except ValueError:
        return None
