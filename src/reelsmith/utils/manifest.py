from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from reelsmith.domain.job import Job
from reelsmith.utils import ffmpeg
from reelsmith.utils.timing import StepTiming, iso


def _file_entry(path: Path | None) -> dict[str, Any] | None:
    if path is None:
        return None
    path = Path(path)
    size = path.stat().st_size if path.exists() else None
    return {"path": str(path), "size_bytes": size}


def _style_entry(job: Job) -> dict[str, Any]:
    style = job.style
    return {
        "id": style.id,
        "segmentation": style.segmentation,
        "words_per_segment": style.words_per_segment,
        "captions_enabled": style.captions_enabled,
        "caption_words": [style.min_words_per_caption, style.max_words_per_caption],
        "karaoke": style.karaoke,
        "pan_effect": style.pan_effect,
        "chunk_size": job.chunk_size,
    }


def write_run_manifest(
    *,
    job: Job,
    steps: Iterable[StepTiming],
    started_at: datetime,
    finished_at: datetime,
) -> Path:
    artifacts = job.artifacts
    segments = artifacts.segments
    images = artifacts.images
    result = artifacts.result

    video_path = result.video_path if result else None
    probed = ffmpeg.probe_duration(video_path) if video_path and Path(video_path).exists() else None

    payload: dict[str, Any] = {
        "run_id": job.workspace.run_id,
        "started_at": iso(started_at),
        "finished_at": iso(finished_at),
        "duration_seconds_total": (finished_at - started_at).total_seconds(),
        "status": "failed" if artifacts.error else ("done" if result else "partial"),
        "error": artifacts.error,
        "settings_public": job.settings.to_public_dict(),
        "cli_overrides": job.cli_overrides,
        "style": _style_entry(job),
        "steps": [step.to_dict() for step in steps],
        "segments": {
            "count": len(segments.segments),
            "mode": segments.mode,
            "path": str(segments.path),
            "transcript_path": str(segments.transcript_path) if segments.transcript_path else None,
        }
        if segments
        else None,
        "images": {"count": len(images.images), "timing_mismatches": images.mismatches}
        if images
        else None,
        "chunk_count": artifacts.chunk_count,
        "artifacts": {
            "video": _file_entry(video_path),
            "subtitles": _file_entry(result.subtitles_path) if result else None,
        },
        "video_duration_seconds": result.duration_seconds if result else None,
        "probed_duration_seconds": probed,
    }

    out = job.workspace.run_manifest
    out.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    return out
