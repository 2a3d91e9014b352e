from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from reelsmith.cli.main import app
from reelsmith.exceptions import ConfigurationError, DependencyMissingError, EncoderError


def _assemble_args(tmp_path: Path, *extra: str) -> list[str]:
    return [
        "assemble",
        str(tmp_path / "words.json"),
        str(tmp_path / "narration.mp3"),
        str(tmp_path / "images.json"),
        "--workdir",
        str(tmp_path / ".reelsmith"),
        *extra,
    ]


def test_cli_reports_config_error(monkeypatch, tmp_path: Path) -> None:
    import reelsmith.cli.main as cli_main

    def fake_run_pipeline(*_args, **_kwargs):  # noqa: ANN001
        raise ConfigurationError("bad config value")

    monkeypatch.setattr(cli_main, "_run_assemble_pipeline", fake_run_pipeline)

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, _assemble_args(tmp_path))

    assert result.exit_code == 2
    assert "Configuration error: bad config value" in result.stderr


def test_cli_reports_dependency_error(monkeypatch, tmp_path: Path) -> None:
    import reelsmith.cli.main as cli_main

    def fake_run_pipeline(*_args, **_kwargs):  # noqa: ANN001
        raise DependencyMissingError("ffmpeg missing")

    monkeypatch.setattr(cli_main, "_run_assemble_pipeline", fake_run_pipeline)

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, _assemble_args(tmp_path))

    assert result.exit_code == 3
    assert "Dependency error: ffmpeg missing" in result.stderr


def test_cli_lists_retained_files_on_encoder_error(monkeypatch, tmp_path: Path) -> None:
    import reelsmith.cli.main as cli_main

    kept = tmp_path / "chunk_000.mp4"

    def fake_run_pipeline(*_args, **_kwargs):  # noqa: ANN001
        raise EncoderError("ffmpeg exited with code 1.", returncode=1, retained=[kept])

    monkeypatch.setattr(cli_main, "_run_assemble_pipeline", fake_run_pipeline)

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, _assemble_args(tmp_path))

    assert result.exit_code == 5
    assert "Encoder error: ffmpeg exited with code 1." in result.stderr
    assert f"kept: {kept}" in result.stderr


def test_cli_rejects_unknown_style(tmp_path: Path) -> None:
    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, _assemble_args(tmp_path, "--style", "noir"))

    assert result.exit_code == 2
    assert "Configuration error: Unknown style 'noir'" in result.stderr


def test_cli_reports_missing_words_file(tmp_path: Path) -> None:
    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, ["segment", str(tmp_path / "missing.json"), "--workdir", str(tmp_path)])

    assert result.exit_code == 4
    assert "Invalid input: Words file not found" in result.stderr


def test_cli_reports_bad_image_timing_as_invalid_input(tmp_path: Path) -> None:
    (tmp_path / "words.json").write_text(
        json.dumps([{"text": "Hello", "start": 0, "end": 400}, {"text": "world.", "start": 500, "end": 900}]),
        encoding="utf-8",
    )
    (tmp_path / "narration.mp3").write_bytes(b"mp3")
    (tmp_path / "images.json").write_text(
        json.dumps([{"path": "a.png", "start": "zero", "end": 1000}]),
        encoding="utf-8",
    )

    runner = CliRunner(mix_stderr=False)
    result = runner.invoke(app, _assemble_args(tmp_path))

    assert result.exit_code == 4
    assert "Invalid input: Invalid timing for image entry #0" in result.stderr
    [run_dir] = [p for p in (tmp_path / ".reelsmith").iterdir() if p.is_dir()]
    manifest = json.loads((run_dir / "run.json").read_text(encoding="utf-8"))
    assert manifest["status"] == "failed"
