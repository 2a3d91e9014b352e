"""
Caption grouping for Reelsmith.

Maps word timings inside each transcript segment to short on-screen
caption groups (e.g. 3-6 words). Groups never span two segments, so a
caption never straddles a scene cut.
"""

from __future__ import annotations

import math
from typing import Sequence

from reelsmith.domain.models import CaptionGroup, CaptionWord, TranscriptSegment, Word
from reelsmith.exceptions import PreconditionError
from reelsmith.utils.logging import get_logger

log = get_logger(__name__)

# Word start times may drift slightly past the segment edges computed from
# neighbouring words; this much slack keeps them with their segment.
DEFAULT_TIMING_TOLERANCE_MS = 100


def collect_segment_words(
    segments: Sequence[TranscriptSegment],
    words: Sequence[Word],
    *,
    tolerance_ms: int = DEFAULT_TIMING_TOLERANCE_MS,
) -> list[list[CaptionWord]]:
    """
    Assign words to segments by start time.

    Words are consumed in order and never assigned twice. Words starting
    before the current segment's window are dropped.
    """
    assigned: list[list[CaptionWord]] = []
    cursor = 0
    for segment in segments:
        lower = segment.start_ms - tolerance_ms
        upper = segment.end_ms + tolerance_ms
        bucket: list[CaptionWord] = []
        while cursor < len(words):
            word = words[cursor]
            if word.start_ms > upper:
                break
            if word.start_ms >= lower:
                bucket.append(CaptionWord(text=word.text, start_ms=word.start_ms, end_ms=word.end_ms))
            else:
                log.debug("Dropping word %r before segment %d window", word.text, segment.index)
            cursor += 1
        assigned.append(bucket)
    return assigned


def split_into_groups(
    words: Sequence[CaptionWord],
    min_words: int = 3,
    max_words: int = 6,
) -> list[CaptionGroup]:
    if min_words <= 0 or max_words < min_words:
        raise PreconditionError(f"Invalid caption word range: {min_words}-{max_words}.")

    ideal = math.ceil((min_words + max_words) / 2)
    groups: list[CaptionGroup] = []
    i = 0
    while i < len(words):
        remaining = len(words) - i
        if remaining <= max_words:
            size = remaining
        elif remaining == max_words + 1:
            # Two near-equal halves instead of a lone trailing word.
            size = math.ceil(remaining / 2)
        else:
            # Includes max+2: an ideal group, then a remainder that fits.
            size = ideal
        size = max(min_words, min(max_words, size))

        chunk = list(words[i : i + size])
        if chunk:
            groups.append(CaptionGroup.from_words(chunk))
        i += size
    return groups


def build_caption_groups(
    segments: Sequence[TranscriptSegment],
    words: Sequence[Word],
    *,
    min_words: int = 3,
    max_words: int = 6,
    tolerance_ms: int = DEFAULT_TIMING_TOLERANCE_MS,
) -> list[CaptionGroup]:
    log.info("Generating caption groups (%d-%d words per group)", min_words, max_words)
    groups: list[CaptionGroup] = []
    for bucket in collect_segment_words(segments, words, tolerance_ms=tolerance_ms):
        groups.extend(split_into_groups(bucket, min_words, max_words))
    log.info("Created %d caption groups", len(groups))
    return groups
