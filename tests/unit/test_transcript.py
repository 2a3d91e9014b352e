from __future__ import annotations

import json
from pathlib import Path

import pytest

from reelsmith.domain.models import RenderableImage, TranscriptSegment, Word
from reelsmith.exceptions import PreconditionError
from reelsmith.services.transcript import (
    check_image_timing,
    format_transcript,
    load_words,
    normalize_words,
    parse_words,
    validate_words,
)


def test_parse_words_accepts_provider_payload() -> None:
    words = parse_words(
        {
            "words": [
                {"text": "Hello", "start": 120, "end": 400, "speaker": "A", "confidence": 0.98},
                {"text": "world.", "start_ms": 450, "end_ms": 800},
            ]
        }
    )

    assert words[0] == Word("Hello", 120, 400, speaker="A", confidence=0.98)
    assert words[1] == Word("world.", 450, 800)


def test_parse_words_rejects_bad_timing() -> None:
    with pytest.raises(PreconditionError):
        parse_words([{"text": "Hello", "start": "soon", "end": 10}])
    with pytest.raises(PreconditionError):
        parse_words("not a list")
    with pytest.raises(PreconditionError):
        parse_words(json.loads('[{"text": "hi", "start": NaN, "end": 10}]'))
    with pytest.raises(PreconditionError):
        parse_words([{"text": "hi", "start": 0, "end": float("inf")}])


def test_load_words_reports_missing_and_invalid_files(tmp_path: Path) -> None:
    with pytest.raises(PreconditionError):
        load_words(tmp_path / "missing.json")

    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    with pytest.raises(PreconditionError):
        load_words(broken)

    ok = tmp_path / "words.json"
    ok.write_text(json.dumps([{"text": "Hi", "start": 0, "end": 100}]), encoding="utf-8")
    assert load_words(ok) == [Word("Hi", 0, 100)]


def test_validate_words() -> None:
    with pytest.raises(PreconditionError):
        validate_words([])
    with pytest.raises(PreconditionError):
        validate_words([Word("late", 500, 100)])
    validate_words([Word("fine", 0, 100)])


def test_normalize_words_shifts_to_zero() -> None:
    words = normalize_words([Word("a", 1500, 1800), Word("b", 1900, 2200)])
    assert [(w.start_ms, w.end_ms) for w in words] == [(0, 300), (400, 700)]


def test_format_transcript() -> None:
    text = format_transcript([TranscriptSegment(index=1, text="It began.", start_ms=0, end_ms=1200)])
    assert text == "[0–1200ms]: It began.\n"


def test_check_image_timing_counts_mismatches() -> None:
    segments = [
        TranscriptSegment(index=1, text="a", start_ms=0, end_ms=1000),
        TranscriptSegment(index=2, text="b", start_ms=1000, end_ms=2000),
    ]
    images = [
        RenderableImage(path=Path("a.png"), start_ms=0, end_ms=1000),
        RenderableImage(path=Path("b.png"), start_ms=1000, end_ms=2500),
    ]

    assert check_image_timing(images, segments) == 1
    assert check_image_timing(images[:1], segments) == 1
