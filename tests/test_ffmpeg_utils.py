from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from reelsmith.domain.models import RenderableImage
from reelsmith.exceptions import DependencyMissingError, EncoderError, EncoderMemoryError
from reelsmith.services.render_graph import build_render_graph
from reelsmith.utils import ffmpeg


def _images() -> list[RenderableImage]:
    return [
        RenderableImage(path=Path("a.png"), start_ms=40000, end_ms=45000),
        RenderableImage(path=Path("b.png"), start_ms=45000, end_ms=47500),
    ]


def test_build_render_cmd_loops_each_image_and_maps_audio() -> None:
    images = _images()
    graph = build_render_graph(images)
    cmd = ffmpeg.build_render_cmd(
        images,
        "narration.mp3",
        graph,
        "chunk.mp4",
        audio_offset_seconds=40.0,
        audio_duration_seconds=7.5,
    )

    assert cmd[:5] == ["ffmpeg", "-y", "-hide_banner", "-loglevel", "error"]
    assert cmd[5:11] == ["-loop", "1", "-t", "5.000", "-i", "a.png"]
    assert cmd[11:17] == ["-loop", "1", "-t", "2.500", "-i", "b.png"]
    assert cmd[17:23] == ["-ss", "40.000", "-t", "7.500", "-i", "narration.mp3"]
    assert cmd[cmd.index("-filter_complex") + 1] == graph.filter_complex
    maps = [cmd[i + 1] for i, value in enumerate(cmd) if value == "-map"]
    assert maps == ["[outv]", "2:a"]
    assert cmd[-2:] == ["-shortest", "chunk.mp4"]


def test_build_render_cmd_encoder_settings() -> None:
    images = _images()
    cmd = ffmpeg.build_render_cmd(
        images,
        "narration.mp3",
        build_render_graph(images),
        "out.mp4",
        crf=20,
        preset="medium",
        threads=4,
        max_muxing_queue_size=2048,
        audio_bitrate="128k",
    )

    assert "-ss" not in cmd
    for flag, value in [
        ("-c:v", "libx264"),
        ("-preset", "medium"),
        ("-crf", "20"),
        ("-threads", "4"),
        ("-max_muxing_queue_size", "2048"),
        ("-pix_fmt", "yuv420p"),
        ("-c:a", "aac"),
        ("-b:a", "128k"),
    ]:
        assert cmd[cmd.index(flag) + 1] == value


def test_concat_list_uses_names_relative_to_the_list(tmp_path: Path) -> None:
    list_path = tmp_path / "concat.txt"
    ffmpeg.write_concat_list([tmp_path / "chunk_000.mp4", tmp_path / "it's_001.mp4"], list_path)

    assert list_path.read_text(encoding="utf-8") == (
        "file 'chunk_000.mp4'\nfile 'it'\\''s_001.mp4'\n"
    )


def test_build_concat_cmd_is_stream_copy() -> None:
    cmd = ffmpeg.build_concat_cmd("list.txt", "final.mp4")
    assert cmd[5:] == ["-f", "concat", "-safe", "0", "-i", "list.txt", "-c", "copy", "final.mp4"]


def test_escape_filter_path() -> None:
    assert ffmpeg.escape_filter_path("C:\\runs\\a,b's.ass") == r"'C\:\\runs\\a,b\'\''s.ass'"
    assert ffmpeg.escape_filter_path("/runs/x/captions.ass") == "'/runs/x/captions.ass'"


def test_run_ffmpeg_writes_stderr_log(monkeypatch, tmp_path: Path) -> None:
    def fake_run(cmd, capture_output, text):  # noqa: ANN001
        return SimpleNamespace(returncode=0, stdout="", stderr="frame=1")

    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)
    log_path = tmp_path / "ffmpeg.stderr.txt"

    ffmpeg.run_ffmpeg(["ffmpeg"], stderr_path=log_path)

    assert log_path.read_text(encoding="utf-8") == "frame=1"


@pytest.mark.parametrize("code", [137, -9])
def test_run_ffmpeg_diagnoses_memory_exhaustion(monkeypatch, code: int) -> None:
    def fake_run(cmd, capture_output, text):  # noqa: ANN001
        return SimpleNamespace(returncode=code, stdout="", stderr="Killed")

    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)

    with pytest.raises(EncoderMemoryError) as exc:
        ffmpeg.run_ffmpeg(["ffmpeg"])

    assert "REELSMITH_CHUNK_SIZE" in exc.value.message
    assert exc.value.returncode == code
    assert exc.value.exit_code == 5


def test_run_ffmpeg_reports_stderr_tail(monkeypatch) -> None:
    stderr = "\n".join(f"line {i}" for i in range(40))

    def fake_run(cmd, capture_output, text):  # noqa: ANN001
        return SimpleNamespace(returncode=1, stdout="", stderr=stderr)

    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)

    with pytest.raises(EncoderError) as exc:
        ffmpeg.run_ffmpeg(["ffmpeg"])

    assert not isinstance(exc.value, EncoderMemoryError)
    assert "line 39" in exc.value.stderr
    assert "line 19" not in exc.value.stderr


def test_ensure_ffmpeg_reports_missing_binary(monkeypatch) -> None:
    from reelsmith.utils import checks

    monkeypatch.setattr(checks.shutil, "which", lambda _: None)

    with pytest.raises(DependencyMissingError):
        ffmpeg.ensure_ffmpeg()


def test_probe_duration_parses_ffprobe_output(monkeypatch) -> None:
    def fake_run(cmd, capture_output, text):  # noqa: ANN001
        return SimpleNamespace(returncode=0, stdout="60.016000\n", stderr="")

    monkeypatch.setattr(ffmpeg.shutil, "which", lambda _: "ffprobe")
    monkeypatch.setattr(ffmpeg.subprocess, "run", fake_run)

    assert ffmpeg.probe_duration("final.mp4") == pytest.approx(60.016)
