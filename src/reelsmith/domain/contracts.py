"""
Interfaces of the collaborators surrounding the assembly core.

Transcription, query generation and image acquisition are network-bound
services owned elsewhere; the core only depends on these shapes.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, Sequence

from reelsmith.domain.models import RenderableImage, TranscriptSegment, Word

if TYPE_CHECKING:
    from reelsmith.domain.job import Job


class TranscriptionProvider(Protocol):
    def transcribe(self, audio_path: Path) -> list[Word]: ...


class QueryGenerator(Protocol):
    def generate(self, job: Job, *, transcript: str) -> list[str]: ...


class ImageProvider(Protocol):
    def acquire(
        self, job: Job, *, segments: Sequence[TranscriptSegment]
    ) -> list[RenderableImage]: ...
