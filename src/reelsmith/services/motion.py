"""
Vertical pan model.

An image fit to the output width is taller than the frame; the extra
height is headroom. A fixed share of it is used as travel, the rest is
split into equal top and bottom buffers so the crop never reaches the
image edges. Direction is drawn per image from an explicit random source.
"""

from __future__ import annotations

import random
from dataclasses import dataclass

from reelsmith.domain.models import PanWindow

PAN_UP = "up"
PAN_DOWN = "down"

DEFAULT_TRAVEL_FRACTION = 0.30


@dataclass(frozen=True)
class PanGeometry:
    frame_width: int = 1920
    frame_height: int = 1080
    source_width: int = 1472
    source_height: int = 1104
    travel_fraction: float = DEFAULT_TRAVEL_FRACTION

    @property
    def scaled_height(self) -> float:
        return self.source_height * self.frame_width / self.source_width

    @property
    def headroom(self) -> float:
        return max(0.0, self.scaled_height - self.frame_height)

    @property
    def travel(self) -> float:
        return self.headroom * self.travel_fraction

    @property
    def buffer(self) -> float:
        return (self.headroom - self.travel) / 2


DISABLED = PanWindow(enabled=False)


def pan_window(geometry: PanGeometry, rng: random.Random) -> PanWindow:
    direction = PAN_DOWN if rng.random() > 0.5 else PAN_UP
    top = geometry.buffer
    bottom = geometry.buffer + geometry.travel
    if direction == PAN_DOWN:
        y_start, y_end = top, bottom
    else:
        y_start, y_end = bottom, top
    return PanWindow(
        enabled=True,
        direction=direction,
        y_start=int(round(y_start)),
        y_end=int(round(y_end)),
    )


def plan_pan_windows(
    count: int,
    *,
    enabled: bool,
    geometry: PanGeometry,
    rng: random.Random | None = None,
) -> list[PanWindow]:
    if not enabled:
        return [DISABLED] * count
    source = rng or random.Random()
    return [pan_window(geometry, source) for _ in range(count)]


def crop_y_expression(window: PanWindow, total_frames: int) -> str:
    """
    ffmpeg crop `y` expression moving linearly from y_start to y_end.

    `n` is the output frame number; past `total_frames` the offset holds
    at y_end.
    """
    frames = max(1, total_frames)
    return (
        f"if(lte(n,{frames}),"
        f"{window.y_start}+({window.y_end}-{window.y_start})*n/{frames},"
        f"{window.y_end})"
    )
