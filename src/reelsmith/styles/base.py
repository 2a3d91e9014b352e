from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

# ASS colours are &HAABBGGRR (alpha, blue, green, red).
HIGHLIGHT_COLORS: dict[str, str] = {
    "purple": "&H00FF008B",
    "yellow": "&H0000FFFF",
    "red": "&H000000FF",
    "green": "&H0000FF00",
    "blue": "&H00FF0000",
    "orange": "&H0000A5FF",
    "pink": "&H00B469FF",
    "cyan": "&H00FFFF00",
    "white": "&H00FFFFFF",
}

SEGMENTATION_MODES = ("sentence", "wordCount")


@dataclass(frozen=True)
class CaptionStyle:
    font_name: str = "Resolve-Bold"
    font_size: int = 72
    primary_color: str = "&H00FFFFFF"
    outline_color: str = "&H00000000"
    background_color: str = "&H80000000"
    outline_width: int = 1
    shadow_depth: int = 2
    use_box: bool = False


@dataclass(frozen=True)
class HighlightStyle:
    enabled: bool = True
    color: str = "&H00FF008B"
    use_box: bool = True


@dataclass(frozen=True)
class VideoStyle:
    id: str
    name: str
    description: str = ""
    segmentation: str = "sentence"
    words_per_segment: int = 0
    captions_enabled: bool = True
    min_words_per_caption: int = 3
    max_words_per_caption: int = 6
    caption: CaptionStyle = field(default_factory=CaptionStyle)
    highlight: HighlightStyle = field(default_factory=HighlightStyle)
    pan_effect: bool = False
    zoom_to_fit: bool = False
    images_per_chunk: int = 15

    @property
    def karaoke(self) -> bool:
        return self.highlight.enabled


@dataclass(frozen=True)
class StyleOptions:
    """Runtime overrides applied on top of a preset."""

    pan_effect: Optional[bool] = None
    karaoke: Optional[bool] = None
    highlight_color: Optional[str] = None
    highlight_box: Optional[bool] = None
    captions_enabled: Optional[bool] = None
    images_per_chunk: Optional[int] = None


def resolve_style(style: VideoStyle, options: StyleOptions | None = None) -> VideoStyle:
    if options is None:
        return style

    highlight = style.highlight
    if options.karaoke is not None:
        highlight = replace(highlight, enabled=options.karaoke)
    if options.highlight_color is not None:
        color = HIGHLIGHT_COLORS.get(options.highlight_color.strip().lower())
        if color is not None:
            highlight = replace(highlight, color=color)
    if options.highlight_box is not None:
        highlight = replace(highlight, use_box=options.highlight_box)

    resolved = replace(style, highlight=highlight)
    if options.pan_effect is not None:
        resolved = replace(resolved, pan_effect=options.pan_effect)
    if options.captions_enabled is not None:
        resolved = replace(resolved, captions_enabled=options.captions_enabled)
    if options.images_per_chunk is not None:
        resolved = replace(resolved, images_per_chunk=options.images_per_chunk)
    return resolved
