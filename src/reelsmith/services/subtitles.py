"""
Subtitle compiler for Reelsmith.

Renders caption groups into an ASS (Advanced SubStation Alpha) track.

Modes:
- static: one dialogue line per caption group
- karaoke: one dialogue line per word, the spoken word switched to the
  Highlight style and the rest of the group kept in Default

Responsibilities:
- Declare the Default and Highlight styles once per track
- Chain karaoke timings so consecutive words never leave a gap
- Write the track to disk

Does NOT:
- Decide which words belong together (captions.py does)
- Burn subtitles into video (render_graph.py appends the overlay)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from reelsmith.domain.models import CaptionGroup, TranscriptSegment, Word
from reelsmith.services.captions import DEFAULT_TIMING_TOLERANCE_MS, build_caption_groups
from reelsmith.styles.base import VideoStyle
from reelsmith.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_STYLE_NAME = "Default"
HIGHLIGHT_STYLE_NAME = "Highlight"

# BorderStyle 1 = outline + drop shadow, 3 = opaque box.
BORDER_OUTLINE = 1
BORDER_BOX = 3

HIGHLIGHT_OUTLINE_WIDTH = 6
ALIGNMENT_BOTTOM_CENTER = 2
MARGIN_L = 10
MARGIN_R = 10
MARGIN_V = 130

STYLE_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
    "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, "
    "ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, "
    "Alignment, MarginL, MarginR, MarginV, Encoding"
)
EVENT_FORMAT = "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"


@dataclass(frozen=True)
class SubtitleEntry:
    start_ms: int
    end_ms: int
    text: str
    style: str = DEFAULT_STYLE_NAME


@dataclass(frozen=True)
class SubtitleTrack:
    path: Path
    group_count: int
    entry_count: int
    karaoke: bool


def format_ass_time(ms: int) -> str:
    """Milliseconds -> H:MM:SS.CC (centiseconds truncated)."""
    ms = max(0, int(ms))
    total_s, rem_ms = divmod(ms, 1000)
    total_m, s = divmod(total_s, 60)
    h, m = divmod(total_m, 60)
    return f"{h}:{m:02d}:{s:02d}.{rem_ms // 10:02d}"


def escape_ass_text(text: str) -> str:
    return (
        text.replace("\\", r"\\")
        .replace("{", r"\{")
        .replace("}", r"\}")
        .replace("\n", r"\N")
    )


def _display(text: str) -> str:
    return escape_ass_text(text.upper())


def static_entries(groups: Sequence[CaptionGroup]) -> list[SubtitleEntry]:
    entries: list[SubtitleEntry] = []
    for group in groups:
        if not group.words:
            continue
        entries.append(
            SubtitleEntry(
                start_ms=group.words[0].start_ms,
                end_ms=group.words[-1].end_ms,
                text=" ".join(_display(w.text) for w in group.words),
            )
        )
    return entries


def karaoke_entries(groups: Sequence[CaptionGroup]) -> list[SubtitleEntry]:
    entries: list[SubtitleEntry] = []
    for group in groups:
        words = group.words
        for i, current in enumerate(words):
            end = words[i + 1].start_ms if i + 1 < len(words) else current.end_ms
            parts = []
            for j, word in enumerate(words):
                name = HIGHLIGHT_STYLE_NAME if j == i else DEFAULT_STYLE_NAME
                parts.append(f"{{\\r{name}}}{_display(word.text)}{{\\r}}")
            entries.append(SubtitleEntry(start_ms=current.start_ms, end_ms=end, text=" ".join(parts)))
    return entries


def compile_entries(groups: Sequence[CaptionGroup], style: VideoStyle) -> list[SubtitleEntry]:
    if style.karaoke:
        return karaoke_entries(groups)
    return static_entries(groups)


def build_ass_header(style: VideoStyle, *, width: int, height: int) -> list[str]:
    caption = style.caption
    highlight = style.highlight
    default_border = BORDER_BOX if caption.use_box else BORDER_OUTLINE
    highlight_border = BORDER_BOX if highlight.use_box else BORDER_OUTLINE
    layout = f"{ALIGNMENT_BOTTOM_CENTER},{MARGIN_L},{MARGIN_R},{MARGIN_V},1"

    return [
        "[Script Info]",
        "Title: Word-by-Word Highlighted Captions",
        "ScriptType: v4.00+",
        "WrapStyle: 0",
        f"PlayResX: {width}",
        f"PlayResY: {height}",
        "ScaledBorderAndShadow: yes",
        "",
        "[V4+ Styles]",
        STYLE_FORMAT,
        (
            f"Style: {DEFAULT_STYLE_NAME},"
            f"{caption.font_name},{caption.font_size},"
            f"{caption.primary_color},&H000000FF,"
            f"{caption.outline_color},{caption.background_color},"
            "-1,0,0,0,100,100,0,0,"
            f"{default_border},{caption.outline_width},{caption.shadow_depth},"
            f"{layout}"
        ),
        (
            f"Style: {HIGHLIGHT_STYLE_NAME},"
            f"{caption.font_name},{caption.font_size},"
            f"{caption.primary_color},&H000000FF,"
            f"{highlight.color},{highlight.color},"
            "-1,0,0,0,100,100,0,0,"
            f"{highlight_border},{HIGHLIGHT_OUTLINE_WIDTH},0,"
            f"{layout}"
        ),
        "",
        "[Events]",
        EVENT_FORMAT,
    ]


def render_ass(
    groups: Sequence[CaptionGroup],
    style: VideoStyle,
    *,
    width: int = 1920,
    height: int = 1080,
) -> str:
    lines = build_ass_header(style, width=width, height=height)
    for entry in compile_entries(groups, style):
        lines.append(
            f"Dialogue: 0,{format_ass_time(entry.start_ms)},{format_ass_time(entry.end_ms)},"
            f"{entry.style},,0,0,0,,{entry.text}"
        )
    return "\n".join(lines) + "\n"


def write_ass(
    groups: Sequence[CaptionGroup],
    style: VideoStyle,
    path: Path,
    *,
    width: int = 1920,
    height: int = 1080,
) -> Path:
    log.debug("Writing ASS track (karaoke: %s) -> %s", "on" if style.karaoke else "off", path)
    path.write_text(render_ass(groups, style, width=width, height=height), encoding="utf-8")
    return path


def compile_subtitle_track(
    segments: Sequence[TranscriptSegment],
    words: Sequence[Word],
    style: VideoStyle,
    out_path: Path,
    *,
    width: int = 1920,
    height: int = 1080,
    tolerance_ms: int = DEFAULT_TIMING_TOLERANCE_MS,
) -> SubtitleTrack:
    """Group words per segment and write the resulting ASS track."""
    groups = build_caption_groups(
        segments,
        words,
        min_words=style.min_words_per_caption,
        max_words=style.max_words_per_caption,
        tolerance_ms=tolerance_ms,
    )
    write_ass(groups, style, out_path, width=width, height=height)
    entry_count = sum(len(g.words) for g in groups) if style.karaoke else len(groups)
    log.info("Subtitle track: %d groups, %d dialogue lines -> %s", len(groups), entry_count, out_path)
    return SubtitleTrack(
        path=out_path,
        group_count=len(groups),
        entry_count=entry_count,
        karaoke=style.karaoke,
    )
