from __future__ import annotations

from reelsmith.exceptions import ConfigurationError

from .base import (
    HIGHLIGHT_COLORS,
    CaptionStyle,
    HighlightStyle,
    StyleOptions,
    VideoStyle,
    resolve_style,
)
from .history import HISTORY
from .stickfigure import STICKFIGURE
from .ww2 import WW2

STYLES: dict[str, VideoStyle] = {
    HISTORY.id: HISTORY,
    STICKFIGURE.id: STICKFIGURE,
    WW2.id: WW2,
}

DEFAULT_STYLE_ID = HISTORY.id


def list_styles() -> list[str]:
    return sorted(STYLES)


def get_style(style_id: str | None) -> VideoStyle:
    key = (style_id or DEFAULT_STYLE_ID).strip().lower()
    if key not in STYLES:
        valid = ", ".join(list_styles())
        raise ConfigurationError(f"Unknown style '{style_id}'. Use one of: {valid}.")
    return STYLES[key]


__all__ = [
    "HIGHLIGHT_COLORS",
    "CaptionStyle",
    "HighlightStyle",
    "StyleOptions",
    "VideoStyle",
    "resolve_style",
    "STYLES",
    "DEFAULT_STYLE_ID",
    "list_styles",
    "get_style",
    "HISTORY",
    "STICKFIGURE",
    "WW2",
]
