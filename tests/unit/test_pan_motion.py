from __future__ import annotations

import random

import pytest

from reelsmith.services.motion import (
    DISABLED,
    PAN_DOWN,
    PAN_UP,
    PanGeometry,
    crop_y_expression,
    pan_window,
    plan_pan_windows,
)


class FixedRandom:
    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


def test_geometry_for_default_source_size() -> None:
    geometry = PanGeometry()

    assert geometry.scaled_height == pytest.approx(1440.0)
    assert geometry.headroom == pytest.approx(360.0)
    assert geometry.travel == pytest.approx(108.0)
    assert geometry.buffer == pytest.approx(126.0)


def test_short_source_has_no_headroom() -> None:
    geometry = PanGeometry(source_width=1920, source_height=1000)
    assert geometry.headroom == 0.0


def test_direction_follows_random_draw() -> None:
    geometry = PanGeometry()

    down = pan_window(geometry, FixedRandom(0.9))
    up = pan_window(geometry, FixedRandom(0.1))

    assert (down.direction, down.y_start, down.y_end) == (PAN_DOWN, 126, 234)
    assert (up.direction, up.y_start, up.y_end) == (PAN_UP, 234, 126)


def test_many_images_pan_both_ways_within_buffers() -> None:
    geometry = PanGeometry()
    windows = plan_pan_windows(200, enabled=True, geometry=geometry, rng=random.Random(7))

    assert {w.direction for w in windows} == {PAN_UP, PAN_DOWN}
    for window in windows:
        assert 0 <= window.y_start <= geometry.headroom
        assert 0 <= window.y_end <= geometry.headroom
        assert min(window.y_start, window.y_end) >= round(geometry.buffer)
        assert max(window.y_start, window.y_end) <= round(geometry.headroom - geometry.buffer)


def test_seeded_plans_are_reproducible() -> None:
    geometry = PanGeometry()
    first = plan_pan_windows(20, enabled=True, geometry=geometry, rng=random.Random(42))
    second = plan_pan_windows(20, enabled=True, geometry=geometry, rng=random.Random(42))

    assert first == second


def test_disabled_plan() -> None:
    windows = plan_pan_windows(3, enabled=False, geometry=PanGeometry())
    assert windows == [DISABLED] * 3


def test_crop_expression_moves_linearly_then_holds() -> None:
    window = pan_window(PanGeometry(), FixedRandom(0.9))
    assert crop_y_expression(window, 150) == "if(lte(n,150),126+(234-126)*n/150,234)"
