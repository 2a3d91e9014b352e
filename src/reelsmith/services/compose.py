"""
Chunked video composition for Reelsmith.

Renders the final MP4 from images, narration audio and an optional
caption track, bounding peak encoder memory by rendering at most
`chunk_size` images per ffmpeg invocation.

States:
    PLANNING -> SINGLE_PASS -> DONE
    PLANNING -> MULTI_PASS -> CONCATENATING -> DONE
    any non-terminal state -> FAILED

Responsibilities:
- Order images and split them into chunks without splitting an image
- Rebase caption words/segments to each chunk's own timeline
- Run one encoder process at a time, strictly in order
- Join chunk outputs with a stream-copy concat and delete intermediates

Does NOT:
- Retry failed encoder runs
- Acquire images or transcribe audio
- Delete anything after a failure (chunk files stay for inspection)
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Sequence

from reelsmith.domain.job import Job
from reelsmith.domain.models import (
    AssemblyResult,
    RenderableImage,
    RenderChunk,
    TranscriptSegment,
    Word,
)
from reelsmith.exceptions import (
    ConcatenationError,
    ConfigurationError,
    EncoderError,
    PreconditionError,
    ReelsmithError,
    RenderIOError,
)
from reelsmith.services.motion import PanGeometry, plan_pan_windows
from reelsmith.services.render_graph import build_render_graph
from reelsmith.services.subtitles import compile_subtitle_track
from reelsmith.utils import ffmpeg
from reelsmith.utils.checks import require_file
from reelsmith.utils.logging import get_logger

log = get_logger(__name__)


class RenderState(str, Enum):
    PLANNING = "planning"
    SINGLE_PASS = "single_pass"
    MULTI_PASS = "multi_pass"
    CONCATENATING = "concatenating"
    DONE = "done"
    FAILED = "failed"


def validate_images(images: Sequence[RenderableImage]) -> None:
    if not images:
        raise PreconditionError("No images provided for video generation.")
    for i, image in enumerate(images, start=1):
        if image.end_ms <= image.start_ms:
            raise PreconditionError(
                f"Image {i} has an empty time window: {image.start_ms}-{image.end_ms}ms"
            )
        if not Path(image.path).is_file():
            raise PreconditionError(f"Image {i} not found: {image.path}")


def plan_chunks(images: Sequence[RenderableImage], chunk_size: int) -> list[RenderChunk]:
    """Split time-ordered images into consecutive chunks of at most `chunk_size`."""
    if chunk_size <= 0:
        raise ConfigurationError(f"Chunk size must be positive, got {chunk_size}.")
    chunks: list[RenderChunk] = []
    for offset in range(0, len(images), chunk_size):
        members = list(images[offset : offset + chunk_size])
        chunks.append(
            RenderChunk(
                index=len(chunks),
                images=members,
                start_ms=members[0].start_ms,
                end_ms=members[-1].end_ms,
            )
        )
    return chunks


def rebase_captions(
    chunk: RenderChunk,
    segments: Sequence[TranscriptSegment],
    words: Sequence[Word],
) -> tuple[list[TranscriptSegment], list[Word]]:
    """Keep segments/words fully inside the chunk window, shifted to start at 0."""
    local_segments = [
        s.shifted(chunk.start_ms)
        for s in segments
        if s.start_ms >= chunk.start_ms and s.end_ms <= chunk.end_ms
    ]
    local_words = [
        w.shifted(chunk.start_ms)
        for w in words
        if w.start_ms >= chunk.start_ms and w.end_ms <= chunk.end_ms
    ]
    return local_segments, local_words


def _existing(paths: Sequence[Path | None]) -> list[Path]:
    return [p for p in paths if p is not None and p.exists()]


@dataclass
class ComposeService:
    """
    ffmpeg-based image-sequence renderer.

    Notes:
    - `rng` drives pan directions; pass a seeded Random for reproducible output.
    - `output_path` overrides the run directory's final.mp4.
    - Captions are burned in only when the style enables them and both
      words and segments are supplied.
    """

    rng: random.Random | None = None
    output_path: Path | None = None
    state: RenderState = field(default=RenderState.PLANNING, init=False)
    history: list[RenderState] = field(default_factory=list, init=False)
    chunks: list[RenderChunk] = field(default_factory=list, init=False)

    def _enter(self, state: RenderState) -> None:
        log.debug("Render state: %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def render(
        self,
        job: Job,
        *,
        images: Sequence[RenderableImage],
        audio_path: str | Path,
        words: Sequence[Word] | None = None,
        segments: Sequence[TranscriptSegment] | None = None,
        output_path: Path | None = None,
    ) -> AssemblyResult:
        self.state = RenderState.PLANNING
        self.history = []
        self.chunks = []
        self._enter(RenderState.PLANNING)

        try:
            ffmpeg.ensure_ffmpeg()
            validate_images(images)
            audio = require_file(audio_path, what="audio file")

            ordered = sorted(images, key=lambda image: image.start_ms)
            out = output_path or self.output_path or job.workspace.output_mp4
            chunk_size = job.chunk_size
            captions = bool(job.style.captions_enabled and words and segments)
            rng = self.rng or random.Random()

            if len(ordered) <= chunk_size:
                self._enter(RenderState.SINGLE_PASS)
                chunk_count = self._render_single(job, ordered, audio, out, words, segments, captions, rng)
            else:
                self._enter(RenderState.MULTI_PASS)
                chunk_count = self._render_multi(job, ordered, audio, out, words, segments, captions, rng)
        except ReelsmithError:
            self._enter(RenderState.FAILED)
            raise
        except OSError as exc:
            self._enter(RenderState.FAILED)
            tmp_dir = job.workspace.root / "tmp"
            retained = sorted(tmp_dir.iterdir()) if tmp_dir.is_dir() else []
            log.error("Render I/O failed (%s); keeping %d temporary file(s)", exc, len(retained))
            raise RenderIOError(f"Could not write render artifact: {exc}", retained=retained) from exc

        duration = sum(image.duration_seconds for image in ordered)
        self._enter(RenderState.DONE)
        log.info("Video ready -> %s (%.2fs, %d chunk(s))", out, duration, chunk_count)
        return AssemblyResult(
            video_path=out,
            duration_seconds=duration,
            chunk_count=chunk_count,
            subtitles_path=job.workspace.subtitles_ass if captions and chunk_count == 1 else None,
        )

    # ------------------------------------------------------------------
    # Single pass
    # ------------------------------------------------------------------
    def _render_single(
        self,
        job: Job,
        images: list[RenderableImage],
        audio: Path,
        out: Path,
        words: Sequence[Word] | None,
        segments: Sequence[TranscriptSegment] | None,
        captions: bool,
        rng: random.Random,
    ) -> int:
        log.info("Rendering %d images in a single pass", len(images))
        subtitles_path = None
        if captions:
            subtitles_path = self._write_track(job, segments or [], words or [], job.workspace.subtitles_ass)

        chunk = RenderChunk(
            index=0,
            images=images,
            start_ms=images[0].start_ms,
            end_ms=images[-1].end_ms,
            video_path=out,
            subtitles_path=subtitles_path,
        )
        self.chunks = [chunk]
        stderr_path = job.workspace.stderr_log("render")
        self._encode(job, chunk, audio, out, rng=rng, stderr_path=stderr_path, slice_audio=False)
        if not job.settings.keep_intermediates:
            stderr_path.unlink(missing_ok=True)
        return 1

    # ------------------------------------------------------------------
    # Multi pass
    # ------------------------------------------------------------------
    def _render_multi(
        self,
        job: Job,
        images: list[RenderableImage],
        audio: Path,
        out: Path,
        words: Sequence[Word] | None,
        segments: Sequence[TranscriptSegment] | None,
        captions: bool,
        rng: random.Random,
    ) -> int:
        self.chunks = plan_chunks(images, job.chunk_size)
        log.info(
            "Rendering %d images in %d chunks of up to %d",
            len(images),
            len(self.chunks),
            job.chunk_size,
        )

        stderr_logs: list[Path] = []
        for chunk in self.chunks:
            chunk.video_path = job.workspace.chunk_video(chunk.index)
            if captions:
                local_segments, local_words = rebase_captions(chunk, segments or [], words or [])
                chunk.subtitles_path = self._write_track(
                    job,
                    local_segments,
                    local_words,
                    job.workspace.chunk_subtitles(chunk.index),
                )
            stderr_path = job.workspace.stderr_log(f"chunk{chunk.index:03d}")
            stderr_logs.append(stderr_path)
            log.info(
                "Chunk %d/%d: %d images [%d-%dms]",
                chunk.index + 1,
                len(self.chunks),
                len(chunk.images),
                chunk.start_ms,
                chunk.end_ms,
            )
            try:
                self._encode(
                    job,
                    chunk,
                    audio,
                    chunk.video_path,
                    rng=rng,
                    stderr_path=stderr_path,
                    slice_audio=True,
                )
            except EncoderError as exc:
                exc.retained = _existing(
                    [p for c in self.chunks for p in c.temp_files()] + stderr_logs
                )
                log.error("Chunk %d failed; keeping %d temporary file(s)", chunk.index + 1, len(exc.retained))
                for path in exc.retained:
                    log.warning("Retained: %s", path)
                raise

        self._enter(RenderState.CONCATENATING)
        self._concatenate(job, out)

        if not job.settings.keep_intermediates:
            temporaries = [p for c in self.chunks for p in c.temp_files()] + stderr_logs
            temporaries += [job.workspace.concat_list, job.workspace.stderr_log("concat")]
            for path in temporaries:
                path.unlink(missing_ok=True)
            log.debug("Deleted %d temporary files", len(temporaries))
        return len(self.chunks)

    def _concatenate(self, job: Job, out: Path) -> None:
        chunk_paths = [c.video_path for c in self.chunks if c.video_path is not None]
        list_path = ffmpeg.write_concat_list(chunk_paths, job.workspace.concat_list)
        log.info("Concatenating %d chunks -> %s", len(chunk_paths), out)
        cmd = ffmpeg.build_concat_cmd(list_path, out)
        log.debug("ffmpeg cmd: %s", " ".join(cmd))
        retained = _existing([p for c in self.chunks for p in c.temp_files()]) + [list_path]
        try:
            ffmpeg.run_ffmpeg(
                cmd,
                stderr_path=job.workspace.stderr_log("concat"),
                memory_exit_codes=job.settings.memory_exit_codes,
            )
        except EncoderError as exc:
            log.error("Concatenation failed; concat list kept at %s", list_path)
            raise ConcatenationError(
                f"Concatenation failed: {exc.message}",
                list_path=list_path,
                retained=retained,
            ) from exc
        if not out.exists() or out.stat().st_size == 0:
            raise ConcatenationError(
                f"Concatenation produced no output: {out}",
                list_path=list_path,
                retained=retained,
            )

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------
    def _write_track(
        self,
        job: Job,
        segments: Sequence[TranscriptSegment],
        words: Sequence[Word],
        path: Path,
    ) -> Path:
        track = compile_subtitle_track(
            segments,
            words,
            job.style,
            path,
            width=job.settings.width,
            height=job.settings.height,
            tolerance_ms=job.settings.caption_timing_tolerance_ms,
        )
        return track.path

    def _encode(
        self,
        job: Job,
        chunk: RenderChunk,
        audio: Path,
        out: Path,
        *,
        rng: random.Random,
        stderr_path: Path,
        slice_audio: bool,
    ) -> None:
        settings = job.settings
        geometry = PanGeometry(
            frame_width=settings.width,
            frame_height=settings.height,
            source_width=settings.source_image_width,
            source_height=settings.source_image_height,
            travel_fraction=settings.pan_travel_fraction,
        )
        windows = plan_pan_windows(
            len(chunk.images),
            enabled=job.style.pan_effect,
            geometry=geometry,
            rng=rng,
        )
        graph = build_render_graph(
            chunk.images,
            width=settings.width,
            height=settings.height,
            fps=settings.fps,
            pan_windows=windows,
            zoom_to_fit=job.style.zoom_to_fit,
            subtitles_path=chunk.subtitles_path,
        )
        cmd = ffmpeg.build_render_cmd(
            chunk.images,
            audio,
            graph,
            out,
            audio_offset_seconds=chunk.start_ms / 1000.0 if slice_audio else None,
            audio_duration_seconds=chunk.duration_seconds if slice_audio else None,
            crf=settings.crf,
            preset=settings.preset,
            threads=settings.threads,
            max_muxing_queue_size=settings.max_muxing_queue_size,
            audio_bitrate=settings.audio_bitrate,
        )
        log.debug("ffmpeg cmd: %s", " ".join(cmd))
        ffmpeg.run_ffmpeg(
            cmd,
            stderr_path=stderr_path,
            memory_exit_codes=settings.memory_exit_codes,
        )
        if not out.exists() or out.stat().st_size == 0:
            raise EncoderError(f"ffmpeg produced no output: {out}")
