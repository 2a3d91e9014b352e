"""
File-backed image provider.

Stands in for the search/generation collaborators when images already
exist on disk. The manifest is a JSON list with one entry per segment,
either a bare path (timing taken from the segment) or an object
`{"path": ..., "start": ms, "end": ms}` carrying its own timing.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

from reelsmith.domain.job import Job
from reelsmith.domain.models import RenderableImage, TranscriptSegment
from reelsmith.exceptions import PreconditionError
from reelsmith.services.transcript import is_finite_number
from reelsmith.utils.logging import get_logger

log = get_logger(__name__)


def _entry_to_image(
    raw: Any,
    segment: TranscriptSegment | None,
    base_dir: Path,
    position: int,
) -> RenderableImage:
    if isinstance(raw, str):
        raw = {"path": raw}
    if not isinstance(raw, dict) or not isinstance(raw.get("path"), str):
        raise PreconditionError(f"Image entry #{position} needs a 'path': {raw!r}")

    path = Path(raw["path"]).expanduser()
    if not path.is_absolute():
        path = base_dir / path

    start = raw.get("start")
    end = raw.get("end")
    if start is None or end is None:
        if segment is None:
            raise PreconditionError(f"Image entry #{position} has no timing and no matching segment.")
        start = segment.start_ms if start is None else start
        end = segment.end_ms if end is None else end
    if not is_finite_number(start) or not is_finite_number(end):
        raise PreconditionError(f"Invalid timing for image entry #{position}: {raw!r}")
    return RenderableImage(path=path, start_ms=int(round(start)), end_ms=int(round(end)))


def load_image_manifest(
    path: str | Path,
    segments: Sequence[TranscriptSegment] = (),
) -> list[RenderableImage]:
    source = Path(path)
    if not source.exists():
        raise PreconditionError(f"Image manifest not found: {source}")
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PreconditionError(f"Image manifest is not valid JSON: {source} ({exc})") from exc
    if isinstance(payload, dict):
        payload = payload.get("images")
    if not isinstance(payload, list) or not payload:
        raise PreconditionError(f"Image manifest has no images: {source}")

    base_dir = source.resolve().parent
    images = []
    for i, raw in enumerate(payload):
        segment = segments[i] if i < len(segments) else None
        images.append(_entry_to_image(raw, segment, base_dir, i))
    return images


@dataclass
class ManifestImageProvider:
    manifest_path: Path

    def acquire(self, job: Job, *, segments: Sequence[TranscriptSegment]) -> list[RenderableImage]:
        images = load_image_manifest(self.manifest_path, segments)
        log.info("Loaded %d images from %s", len(images), self.manifest_path)
        return images
