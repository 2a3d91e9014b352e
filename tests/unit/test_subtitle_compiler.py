from __future__ import annotations

from pathlib import Path

from reelsmith.domain.models import CaptionGroup, CaptionWord, TranscriptSegment, Word
from reelsmith.services.subtitles import (
    build_ass_header,
    compile_subtitle_track,
    escape_ass_text,
    format_ass_time,
    karaoke_entries,
    render_ass,
    static_entries,
)
from reelsmith.styles import HISTORY, WW2, StyleOptions, resolve_style


def _group(*timings: tuple[str, int, int]) -> CaptionGroup:
    return CaptionGroup.from_words([CaptionWord(text=t, start_ms=s, end_ms=e) for t, s, e in timings])


def _dialogues(content: str) -> list[str]:
    return [line for line in content.splitlines() if line.startswith("Dialogue:")]


def _style_fields(content: str, name: str) -> list[str]:
    line = next(line for line in content.splitlines() if line.startswith(f"Style: {name},"))
    return line[len("Style: ") :].split(",")


def test_format_ass_time() -> None:
    assert format_ass_time(0) == "0:00:00.00"
    assert format_ass_time(61234) == "0:01:01.23"
    assert format_ass_time(3723459) == "1:02:03.45"
    assert format_ass_time(-50) == "0:00:00.00"


def test_karaoke_emits_one_line_per_word() -> None:
    group = _group(("the", 0, 300), ("old", 350, 600), ("city", 700, 1000), ("burned", 1100, 1600))
    entries = karaoke_entries([group])

    assert len(entries) == 4


def test_karaoke_timings_are_chained() -> None:
    group = _group(("the", 0, 300), ("old", 350, 600), ("city", 700, 1000))
    entries = karaoke_entries([group])

    for current, following in zip(entries, entries[1:]):
        assert current.end_ms == following.start_ms
    assert entries[-1].end_ms == 1000


def test_karaoke_marks_the_spoken_word() -> None:
    group = _group(("the", 0, 300), ("old", 350, 600))
    entries = karaoke_entries([group])

    assert entries[0].text == r"{\rHighlight}THE{\r} {\rDefault}OLD{\r}"
    assert entries[1].text == r"{\rDefault}THE{\r} {\rHighlight}OLD{\r}"


def test_static_emits_one_line_per_group() -> None:
    groups = [
        _group(("the", 0, 300), ("old", 350, 600), ("city", 700, 1000)),
        _group(("burned", 1100, 1600), ("for", 1650, 1800), ("days", 1850, 2300)),
    ]
    entries = static_entries(groups)

    assert [(e.start_ms, e.end_ms) for e in entries] == [(0, 1000), (1100, 2300)]
    assert entries[0].text == "THE OLD CITY"


def test_escape_ass_text() -> None:
    assert escape_ass_text(r"a{b}c\d") == r"a\{b\}c\\d"


def test_header_declares_both_styles_once() -> None:
    content = render_ass([_group(("a", 0, 100), ("b", 100, 200))], HISTORY, width=1920, height=1080)

    assert content.count("Style: Default,") == 1
    assert content.count("Style: Highlight,") == 1
    assert "PlayResX: 1920" in content
    assert "PlayResY: 1080" in content
    assert "ScaledBorderAndShadow: yes" in content


def test_header_border_styles_follow_box_flags() -> None:
    boxed = "\n".join(build_ass_header(HISTORY, width=1920, height=1080))
    assert _style_fields(boxed, "Default")[15] == "1"
    assert _style_fields(boxed, "Highlight")[15] == "3"
    assert _style_fields(boxed, "Highlight")[5] == HISTORY.highlight.color

    unboxed_style = resolve_style(HISTORY, StyleOptions(highlight_box=False, highlight_color="yellow"))
    unboxed = "\n".join(build_ass_header(unboxed_style, width=1920, height=1080))
    assert _style_fields(unboxed, "Highlight")[15] == "1"
    assert _style_fields(unboxed, "Highlight")[5] == "&H0000FFFF"


def test_header_uses_caption_outline_and_shadow() -> None:
    content = "\n".join(build_ass_header(WW2, width=1280, height=720))
    fields = _style_fields(content, "Default")

    assert fields[16] == "4"
    assert fields[17] == "4"
    assert "PlayResX: 1280" in content


def test_compile_track_writes_karaoke_lines(tmp_path: Path) -> None:
    segments = [TranscriptSegment(index=1, text="", start_ms=0, end_ms=2000)]
    words = [Word(t, i * 400, i * 400 + 350) for i, t in enumerate("we will never surrender".split())]
    out = tmp_path / "captions.ass"

    track = compile_subtitle_track(segments, words, HISTORY, out)

    assert track.karaoke is True
    assert track.group_count == 1
    assert track.entry_count == 4
    dialogues = _dialogues(out.read_text(encoding="utf-8"))
    assert len(dialogues) == 4
    assert dialogues[0].startswith("Dialogue: 0,0:00:00.00,0:00:00.40,Default,,0,0,0,,")


def test_compile_track_static_mode(tmp_path: Path) -> None:
    segments = [TranscriptSegment(index=1, text="", start_ms=0, end_ms=2000)]
    words = [Word(t, i * 400, i * 400 + 350) for i, t in enumerate("we will never surrender".split())]
    out = tmp_path / "captions.ass"

    track = compile_subtitle_track(segments, words, WW2, out)

    dialogues = _dialogues(out.read_text(encoding="utf-8"))
    assert track.karaoke is False
    assert dialogues == ["Dialogue: 0,0:00:00.00,0:00:01.55,Default,,0,0,0,,WE WILL NEVER SURRENDER"]
