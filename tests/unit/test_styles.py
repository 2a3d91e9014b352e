from __future__ import annotations

import pytest

from reelsmith.exceptions import ConfigurationError
from reelsmith.styles import HISTORY, StyleOptions, get_style, list_styles, resolve_style


def test_builtin_styles() -> None:
    assert list_styles() == ["history", "stickfigure", "ww2"]
    assert get_style(None) is HISTORY
    assert get_style(" WW2 ").segmentation == "wordCount"


def test_unknown_style_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError) as exc:
        get_style("noir")
    assert "history" in exc.value.message


def test_resolve_style_applies_overrides() -> None:
    resolved = resolve_style(
        HISTORY,
        StyleOptions(pan_effect=False, karaoke=False, highlight_color="Yellow", images_per_chunk=4),
    )

    assert resolved.pan_effect is False
    assert resolved.karaoke is False
    assert resolved.highlight.color == "&H0000FFFF"
    assert resolved.images_per_chunk == 4
    assert HISTORY.pan_effect is True


def test_unknown_highlight_color_is_ignored() -> None:
    resolved = resolve_style(HISTORY, StyleOptions(highlight_color="mauve"))
    assert resolved.highlight.color == HISTORY.highlight.color


def test_stickfigure_fills_the_frame_instead_of_panning() -> None:
    style = get_style("stickfigure")
    assert style.zoom_to_fit is True
    assert style.pan_effect is False
    assert style.highlight.color == "&H000000FF"
