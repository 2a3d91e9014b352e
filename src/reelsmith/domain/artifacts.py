from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from reelsmith.domain.models import AssemblyResult, RenderableImage, TranscriptSegment


@dataclass(frozen=True)
class SegmentsArtifact:
    path: Path
    segments: tuple[TranscriptSegment, ...]
    transcript_path: Path | None = None
    mode: str = "sentence"


@dataclass(frozen=True)
class ImagesArtifact:
    images: tuple[RenderableImage, ...]
    mismatches: int = 0


@dataclass
class Artifacts:
    segments: Optional[SegmentsArtifact] = None
    images: Optional[ImagesArtifact] = None
    result: Optional[AssemblyResult] = None
    chunk_count: Optional[int] = None
    error: Optional[str] = None
    extra: dict = field(default_factory=dict)
