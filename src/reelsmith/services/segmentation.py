"""
Transcript segmentation service for Reelsmith.

Groups timestamped words into contiguous scene segments. Every segment
later receives exactly one image, so segment boundaries are also the
image boundaries of the final video.

Two strategies:
- sentence: split on terminal punctuation (with abbreviations protected),
  then merge very short neighbours
- wordCount: cut near a target word count, snapping to the closest
  sentence end within a tolerance window

Responsibilities:
- Convert word-index spans into contiguous millisecond ranges
- Persist segments and the formatted transcript to the Workspace

Does NOT:
- Generate image queries or acquire images
- Assign words to caption groups (captions.py does)
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Sequence

from reelsmith.domain.artifacts import SegmentsArtifact
from reelsmith.domain.job import Job
from reelsmith.domain.models import TranscriptSegment, Word
from reelsmith.exceptions import ConfigurationError, PreconditionError
from reelsmith.services.transcript import format_transcript, segments_to_dicts, validate_words
from reelsmith.styles.base import SEGMENTATION_MODES, VideoStyle
from reelsmith.utils.logging import get_logger

log = get_logger(__name__)

COMMON_ABBREVIATIONS = [
    "U.S.",
    "U.K.",
    "Dr.",
    "Mr.",
    "Mrs.",
    "Ms.",
    "Prof.",
    "Sr.",
    "Jr.",
    "Inc.",
    "Ltd.",
    "Corp.",
    "Co.",
    "etc.",
    "vs.",
    "e.g.",
    "i.e.",
    "a.m.",
    "p.m.",
    "J.P.",
]

# Sentences at or below this size always join the following sentence.
SHORT_SENTENCE_WORDS = 2
# Two neighbours at or below this size join each other.
MERGE_SENTENCE_WORDS = 6

DEFAULT_WORD_COUNT_TOLERANCE = 0.30

# Terminal punctuation only counts when followed by whitespace or the end,
# so decimals like "3.5" never split a sentence. Closing quotes and
# brackets stay with the sentence they close.
_SENTENCE_RE = re.compile(r"\S.*?[.!?]+[\"'”’)\]]*(?=\s|$)")
_PUNCT_ONLY_RE = re.compile(r"[.!?,;:\s]")
_TERMINAL_RE = re.compile(r"[.!?][\"'”’)\]]*$")
_ABBREVIATION_RES = [
    re.compile(rf"(?<![\w.]){re.escape(abbr)}", re.IGNORECASE) for abbr in COMMON_ABBREVIATIONS
]


@dataclass(frozen=True)
class SentenceSpan:
    text: str
    start_word: int
    end_word: int
    word_count: int

    def join(self, other: "SentenceSpan") -> "SentenceSpan":
        return SentenceSpan(
            text=f"{self.text} {other.text}".strip(),
            start_word=self.start_word,
            end_word=other.end_word,
            word_count=self.word_count + other.word_count,
        )


def _is_terminal(text: str) -> bool:
    return bool(_TERMINAL_RE.search(text))


def split_sentences(text: str) -> list[str]:
    """Split running text into sentences without breaking on known abbreviations."""
    protected_values: dict[str, str] = {}

    def _protect(match: re.Match[str]) -> str:
        token = f"__ABBR{len(protected_values)}__"
        protected_values[token] = match.group(0)
        return token

    protected = text
    for pattern in _ABBREVIATION_RES:
        protected = pattern.sub(_protect, protected)

    raw: list[str] = []
    last_end = 0
    for match in _SENTENCE_RE.finditer(protected):
        raw.append(match.group(0))
        last_end = match.end()
    remaining = protected[last_end:]
    if remaining.strip():
        raw.append(remaining)

    sentences: list[str] = []
    for sentence in raw:
        for token, value in protected_values.items():
            sentence = sentence.replace(token, value)
        sentences.append(sentence.strip())
    return sentences


def merge_short_sentences(
    spans: Sequence[SentenceSpan],
    *,
    short_words: int = SHORT_SENTENCE_WORDS,
    merge_words: int = MERGE_SENTENCE_WORDS,
) -> list[SentenceSpan]:
    """Single pass: a merged pair is not re-checked against its new neighbour."""
    merged: list[SentenceSpan] = []
    i = 0
    while i < len(spans):
        current = spans[i]
        nxt = spans[i + 1] if i + 1 < len(spans) else None
        if nxt is not None and (
            current.word_count <= short_words
            or (current.word_count <= merge_words and nxt.word_count <= merge_words)
        ):
            joined = current.join(nxt)
            log.debug("Merged short sentences: %r + %r", current.text, nxt.text)
            merged.append(joined)
            i += 2
        else:
            merged.append(current)
            i += 1
    return merged


def segment_by_sentences(words: Sequence[Word]) -> list[SentenceSpan]:
    log.info("Segmenting %d words into sentences", len(words))
    sentences = split_sentences(" ".join(w.text for w in words))

    spans: list[SentenceSpan] = []
    cursor = 0
    for sentence in sentences:
        if not sentence or not _PUNCT_ONLY_RE.sub("", sentence):
            continue
        count = len(sentence.split())
        start = cursor
        end = min(cursor + count - 1, len(words) - 1)
        spans.append(SentenceSpan(text=sentence, start_word=start, end_word=end, word_count=count))
        cursor = end + 1
        if cursor >= len(words):
            break

    if not spans:
        spans.append(
            SentenceSpan(
                text=" ".join(w.text for w in words),
                start_word=0,
                end_word=len(words) - 1,
                word_count=len(words),
            )
        )
    elif cursor < len(words):
        # Sentence word counts fell short of the word list; the tail
        # belongs to the last sentence so the transcript end stays covered.
        last = spans[-1]
        leftover = words[cursor:]
        spans[-1] = SentenceSpan(
            text=" ".join([last.text] + [w.text for w in leftover]),
            start_word=last.start_word,
            end_word=len(words) - 1,
            word_count=last.word_count + len(leftover),
        )

    log.debug("Detected %d raw sentences", len(spans))
    merged = merge_short_sentences(spans)
    log.info("Created %d sentence segments after merging", len(merged))
    return merged


def _scan_for_terminal(words: Sequence[Word], indices: range) -> int | None:
    for i in indices:
        if _is_terminal(words[i].text):
            return i
    return None


def segment_by_word_count(
    words: Sequence[Word],
    words_per_segment: int,
    *,
    tolerance: float = DEFAULT_WORD_COUNT_TOLERANCE,
) -> list[SentenceSpan]:
    if words_per_segment <= 0:
        raise PreconditionError("words_per_segment must be a positive number.")
    log.info(
        "Segmenting %d words into ~%d-word segments (sentence-aware)",
        len(words),
        words_per_segment,
    )

    # round() drops float noise (100 * 0.3 == 30.000000000000004)
    window = math.ceil(round(words_per_segment * tolerance, 9))
    total = len(words)
    spans: list[SentenceSpan] = []
    cursor = 0
    while cursor < total:
        start = cursor
        target = min(cursor + words_per_segment - 1, total - 1)
        limit = min(target + window, total - 1)

        end = _scan_for_terminal(words, range(target, limit + 1))
        if end is None:
            end = _scan_for_terminal(words, range(target - 1, start - 1, -1))
        if end is None:
            end = target

        text = " ".join(w.text for w in words[start : end + 1])
        spans.append(
            SentenceSpan(text=text, start_word=start, end_word=end, word_count=end - start + 1)
        )
        log.debug("Word-count segment %d: %d words", len(spans), end - start + 1)
        cursor = end + 1

    log.info("Created %d word-count segments", len(spans))
    return spans


def spans_to_segments(words: Sequence[Word], spans: Sequence[SentenceSpan]) -> list[TranscriptSegment]:
    """
    Convert word spans to contiguous millisecond segments.

    Times are offset so the first word starts the timeline at 0. Each
    segment starts exactly where the previous one ended, which hides
    small gaps between word timestamps.
    """
    offset = words[0].start_ms
    segments: list[TranscriptSegment] = []
    previous_end = 0
    for index, span in enumerate(spans, start=1):
        end = max(words[span.end_word].end_ms - offset, previous_end)
        segments.append(
            TranscriptSegment(
                index=index,
                text=" ".join(w.text for w in words[span.start_word : span.end_word + 1]),
                start_ms=previous_end,
                end_ms=end,
            )
        )
        previous_end = end
    return segments


def segment_transcript(
    words: Sequence[Word],
    style: VideoStyle,
    *,
    word_count_tolerance: float = DEFAULT_WORD_COUNT_TOLERANCE,
) -> list[TranscriptSegment]:
    if style.segmentation not in SEGMENTATION_MODES:
        raise ConfigurationError(
            f"Unknown segmentation mode '{style.segmentation}' for style '{style.id}'. "
            f"Use one of: {', '.join(SEGMENTATION_MODES)}."
        )
    validate_words(words)
    if style.segmentation == "sentence":
        spans = segment_by_sentences(words)
    else:
        spans = segment_by_word_count(
            words,
            style.words_per_segment,
            tolerance=word_count_tolerance,
        )
    return spans_to_segments(words, spans)


@dataclass
class SegmentationService:
    """
    Segments a job's words and persists the result.

    Writes `segments.json` and `transcript.txt` (the formatted transcript
    handed to the query-generation collaborator).
    """

    def generate(self, job: Job, *, words: Sequence[Word]) -> SegmentsArtifact:
        segments = segment_transcript(
            words,
            job.style,
            word_count_tolerance=job.settings.word_count_tolerance,
        )

        out = job.workspace.segments_json
        out.write_text(json.dumps(segments_to_dicts(segments), indent=2), encoding="utf-8")
        transcript_path = job.workspace.transcript_txt
        transcript_path.write_text(format_transcript(segments), encoding="utf-8")

        log.info("Wrote %d segments -> %s", len(segments), out)
        return SegmentsArtifact(
            path=out,
            segments=tuple(segments),
            transcript_path=transcript_path,
            mode=job.style.segmentation,
        )
