"""
Render-graph builder.

Turns an ordered list of images into one ffmpeg filter graph:

    [i:v] per-image transform [v i]   (one per image)
    [v0][v1]... concat              [outv]
    [outv] ass=<track>              [outs]   (only when captions exist)

Subtitles are a property of the whole chunk timeline, so the overlay is
a single stage after concatenation rather than a per-image filter.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from reelsmith.domain.models import PanWindow, RenderableImage
from reelsmith.exceptions import PreconditionError
from reelsmith.services.motion import crop_y_expression
from reelsmith.utils.ffmpeg import escape_filter_path
from reelsmith.utils.logging import get_logger

log = get_logger(__name__)

CONCAT_LABEL = "outv"
SUBTITLED_LABEL = "outs"


@dataclass(frozen=True)
class RenderGraph:
    filters: tuple[str, ...]
    output_label: str
    image_count: int
    duration_seconds: float
    pan_windows: tuple[PanWindow, ...] = ()

    @property
    def filter_complex(self) -> str:
        return ";".join(self.filters)

    @property
    def output_map(self) -> str:
        return f"[{self.output_label}]"


def total_frames(image: RenderableImage, fps: int) -> int:
    return int(round(image.duration_seconds * fps))


def image_transform(
    index: int,
    image: RenderableImage,
    *,
    width: int,
    height: int,
    fps: int,
    window: PanWindow,
    zoom_to_fit: bool = False,
) -> str:
    if window.enabled:
        y_expr = crop_y_expression(window, total_frames(image, fps))
        return (
            f"[{index}:v]scale={width}:-1,fps={fps},"
            f"crop=w={width}:h={height}:x=0:y='{y_expr}',"
            f"setsar=1,format=yuv420p[v{index}]"
        )
    if zoom_to_fit:
        return (
            f"[{index}:v]scale={width}:{height}:force_original_aspect_ratio=increase,"
            f"crop={width}:{height},setsar=1,fps={fps},format=yuv420p[v{index}]"
        )
    return (
        f"[{index}:v]scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,setsar=1,fps={fps},format=yuv420p[v{index}]"
    )


def build_render_graph(
    images: Sequence[RenderableImage],
    *,
    width: int = 1920,
    height: int = 1080,
    fps: int = 30,
    pan_windows: Sequence[PanWindow] | None = None,
    zoom_to_fit: bool = False,
    subtitles_path: Path | None = None,
) -> RenderGraph:
    if not images:
        raise PreconditionError("No images provided for the render graph.")
    windows = list(pan_windows) if pan_windows is not None else [PanWindow(enabled=False)] * len(images)
    if len(windows) != len(images):
        raise PreconditionError(
            f"Got {len(windows)} pan windows for {len(images)} images."
        )

    filters: list[str] = []
    duration = 0.0
    for i, (image, window) in enumerate(zip(images, windows)):
        duration += image.duration_seconds
        filters.append(
            image_transform(
                i,
                image,
                width=width,
                height=height,
                fps=fps,
                window=window,
                zoom_to_fit=zoom_to_fit,
            )
        )
        if window.enabled:
            log.debug(
                "Image %d: pan %s (%dpx -> %dpx) over %.2fs",
                i + 1,
                window.direction,
                window.y_start,
                window.y_end,
                image.duration_seconds,
            )

    inputs = "".join(f"[v{i}]" for i in range(len(images)))
    filters.append(f"{inputs}concat=n={len(images)}:v=1:a=0[{CONCAT_LABEL}]")

    label = CONCAT_LABEL
    if subtitles_path is not None:
        filters.append(f"[{CONCAT_LABEL}]ass={escape_filter_path(str(subtitles_path))}[{SUBTITLED_LABEL}]")
        label = SUBTITLED_LABEL

    return RenderGraph(
        filters=tuple(filters),
        output_label=label,
        image_count=len(images),
        duration_seconds=duration,
        pan_windows=tuple(windows),
    )
