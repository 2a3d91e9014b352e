from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class Word:
    text: str
    start_ms: int
    end_ms: int
    speaker: Optional[str] = None
    confidence: Optional[float] = None

    def shifted(self, offset_ms: int) -> "Word":
        return Word(
            text=self.text,
            start_ms=self.start_ms - offset_ms,
            end_ms=self.end_ms - offset_ms,
            speaker=self.speaker,
            confidence=self.confidence,
        )


@dataclass(frozen=True)
class TranscriptSegment:
    index: int
    text: str
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms

    def shifted(self, offset_ms: int) -> "TranscriptSegment":
        return TranscriptSegment(
            index=self.index,
            text=self.text,
            start_ms=self.start_ms - offset_ms,
            end_ms=self.end_ms - offset_ms,
        )


@dataclass(frozen=True)
class CaptionWord:
    text: str
    start_ms: int
    end_ms: int


@dataclass(frozen=True)
class CaptionGroup:
    words: tuple[CaptionWord, ...]
    start_ms: int
    end_ms: int
    text: str

    @classmethod
    def from_words(cls, words: list[CaptionWord]) -> "CaptionGroup":
        return cls(
            words=tuple(words),
            start_ms=words[0].start_ms,
            end_ms=words[-1].end_ms,
            text=" ".join(w.text for w in words),
        )


@dataclass(frozen=True)
class RenderableImage:
    path: Path
    start_ms: int
    end_ms: int

    @property
    def duration_seconds(self) -> float:
        return (self.end_ms - self.start_ms) / 1000.0


@dataclass(frozen=True)
class PanWindow:
    enabled: bool
    direction: str = "down"
    y_start: int = 0
    y_end: int = 0


@dataclass
class RenderChunk:
    index: int
    images: list[RenderableImage]
    start_ms: int
    end_ms: int
    video_path: Path | None = None
    subtitles_path: Path | None = None

    @property
    def duration_seconds(self) -> float:
        return (self.end_ms - self.start_ms) / 1000.0

    def temp_files(self) -> list[Path]:
        return [p for p in (self.video_path, self.subtitles_path) if p is not None]


@dataclass(frozen=True)
class AssemblyResult:
    video_path: Path
    duration_seconds: float
    chunk_count: int = 1
    subtitles_path: Path | None = None
    retained: tuple[Path, ...] = field(default_factory=tuple)
