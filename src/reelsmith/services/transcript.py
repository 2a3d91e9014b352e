"""
Transcript helpers shared by the segmenter, caption grouper and pipeline.

Responsibilities:
- Load provider word lists from JSON
- Validate word lists before any timing math runs
- Normalize word times so the transcript starts at 0 ms
- Format segments for the query-generation collaborator
- Compare acquired images against their segments

Does NOT:
- Talk to a transcription provider
- Decide segment boundaries (segmentation.py does)
"""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Any, Iterable, Sequence

from reelsmith.domain.models import RenderableImage, TranscriptSegment, Word
from reelsmith.exceptions import PreconditionError
from reelsmith.utils.logging import get_logger

log = get_logger(__name__)


def is_finite_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _word_from_dict(raw: Any, position: int) -> Word:
    if not isinstance(raw, dict):
        raise PreconditionError(f"Word #{position} is not an object: {raw!r}")
    text = raw.get("text")
    start = raw.get("start", raw.get("start_ms"))
    end = raw.get("end", raw.get("end_ms"))
    if not isinstance(text, str) or isinstance(start, bool) or isinstance(end, bool):
        raise PreconditionError(f"Invalid word structure at #{position}: {raw!r}")
    if not is_finite_number(start) or not is_finite_number(end):
        raise PreconditionError(f"Invalid word timing at #{position}: {raw!r}")
    confidence = raw.get("confidence")
    return Word(
        text=text,
        start_ms=int(round(start)),
        end_ms=int(round(end)),
        speaker=raw.get("speaker"),
        confidence=float(confidence) if isinstance(confidence, (int, float)) else None,
    )


def parse_words(payload: Any) -> list[Word]:
    """Accept either a bare list of words or a transcript object with `words`."""
    if isinstance(payload, dict):
        payload = payload.get("words")
    if not isinstance(payload, list):
        raise PreconditionError("Words must be a list.")
    return [_word_from_dict(raw, i) for i, raw in enumerate(payload)]


def load_words(path: str | Path) -> list[Word]:
    source = Path(path)
    if not source.exists():
        raise PreconditionError(f"Words file not found: {source}")
    try:
        payload = json.loads(source.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise PreconditionError(f"Words file is not valid JSON: {source} ({exc})") from exc
    return parse_words(payload)


def validate_words(words: Sequence[Word]) -> None:
    if not words:
        raise PreconditionError("Words array is empty.")
    for i, word in enumerate(words):
        if not word.text.strip():
            raise PreconditionError(f"Word #{i} has no text.")
        if word.end_ms < word.start_ms:
            raise PreconditionError(
                f"Word #{i} ('{word.text}') ends before it starts: {word.start_ms}-{word.end_ms}ms"
            )
    log.debug("Validation passed for %d words", len(words))


def normalize_words(words: Sequence[Word]) -> list[Word]:
    """Shift all words so the first one starts at 0 ms."""
    if not words:
        return []
    offset = words[0].start_ms
    if offset == 0:
        return list(words)
    log.debug("Normalizing word timings by %dms offset", offset)
    return [w.shifted(offset) for w in words]


def format_transcript(segments: Iterable[TranscriptSegment]) -> str:
    return "".join(f"[{s.start_ms}–{s.end_ms}ms]: {s.text}\n" for s in segments)


def segments_to_dicts(segments: Iterable[TranscriptSegment]) -> list[dict]:
    return [
        {"index": s.index, "text": s.text, "start": s.start_ms, "end": s.end_ms}
        for s in segments
    ]


def check_image_timing(
    images: Sequence[RenderableImage],
    segments: Sequence[TranscriptSegment],
) -> int:
    """
    Warn about images whose window disagrees with their segment.

    Rendering always uses the image's own timing, so mismatches are
    reported and counted, never raised.
    """
    mismatches = 0
    if len(images) != len(segments):
        log.warning(
            "Image count (%d) does not match segment count (%d)",
            len(images),
            len(segments),
        )
        mismatches += abs(len(images) - len(segments))
    for i, (image, segment) in enumerate(zip(images, segments), start=1):
        if image.start_ms != segment.start_ms or image.end_ms != segment.end_ms:
            mismatches += 1
            log.warning(
                "Timestamp mismatch at segment %d: expected [%d-%dms], got [%d-%dms]",
                i,
                segment.start_ms,
                segment.end_ms,
                image.start_ms,
                image.end_ms,
            )
    return mismatches
