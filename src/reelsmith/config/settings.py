from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime configuration for Reelsmith.

    All settings are loaded from environment variables with the
    `REELSMITH_` prefix and optional `.env` support.

    Style presets carry the creative choices (segmentation mode, caption
    look, pan). Settings carry the machine-level knobs: output frame,
    encoder parameters, chunking and tolerances.
    """

    model_config = SettingsConfigDict(
        env_prefix="REELSMITH_",
        env_file=".env",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------
    workdir: str = Field(
        default=".reelsmith",
        description="Root directory for run outputs.",
    )
    style: str = Field(
        default="history",
        description="Style preset id (e.g. history, ww2).",
    )
    keep_intermediates: bool = Field(
        default=False,
        description="Keep chunk videos and chunk subtitle files after a successful run.",
    )

    # ------------------------------------------------------------------
    # Output frame
    # ------------------------------------------------------------------
    width: int = Field(default=1920, description="Output video width in pixels.")
    height: int = Field(default=1080, description="Output video height in pixels.")
    fps: int = Field(default=30, description="Output frame rate.")

    # ------------------------------------------------------------------
    # Pan motion
    # ------------------------------------------------------------------
    source_image_width: int = Field(
        default=1472,
        description="Assumed width of source images when computing pan headroom.",
    )
    source_image_height: int = Field(
        default=1104,
        description="Assumed height of source images when computing pan headroom.",
    )
    pan_travel_fraction: float = Field(
        default=0.30,
        description="Fraction of vertical headroom used as pan travel distance.",
    )

    # ------------------------------------------------------------------
    # Tolerances (empirical, tune against real transcripts)
    # ------------------------------------------------------------------
    word_count_tolerance: float = Field(
        default=0.30,
        description="Fraction of the word-count target scanned for a sentence end.",
    )
    caption_timing_tolerance_ms: int = Field(
        default=100,
        description="Slack when matching word start times to segment windows.",
    )

    # ------------------------------------------------------------------
    # Chunked rendering
    # ------------------------------------------------------------------
    chunk_size: int | None = Field(
        default=None,
        description="Images per render chunk; falls back to the style's threshold.",
    )

    # ------------------------------------------------------------------
    # Encoder
    # ------------------------------------------------------------------
    crf: int = Field(default=23, description="libx264 constant rate factor.")
    preset: str = Field(default="veryfast", description="libx264 preset.")
    threads: int = Field(default=2, description="Encoder thread cap.")
    max_muxing_queue_size: int = Field(
        default=1024,
        description="Upper bound on ffmpeg's muxing queue (packets).",
    )
    audio_bitrate: str = Field(default="192k", description="AAC audio bitrate.")
    memory_exit_codes: list[int] = Field(
        default_factory=lambda: [137, -9],
        description="Encoder exit codes treated as memory exhaustion.",
    )

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR).",
    )

    # ------------------------------------------------------------------
    # Public / safe export
    # ------------------------------------------------------------------
    def to_public_dict(self) -> dict:
        """
        Return a dictionary of settings suitable for logging or CLI display.
        """
        return {
            "workdir": self.workdir,
            "style": self.style,
            "keep_intermediates": self.keep_intermediates,
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "source_image_width": self.source_image_width,
            "source_image_height": self.source_image_height,
            "pan_travel_fraction": self.pan_travel_fraction,
            "word_count_tolerance": self.word_count_tolerance,
            "caption_timing_tolerance_ms": self.caption_timing_tolerance_ms,
            "chunk_size": self.chunk_size,
            "crf": self.crf,
            "preset": self.preset,
            "threads": self.threads,
            "max_muxing_queue_size": self.max_muxing_queue_size,
            "audio_bitrate": self.audio_bitrate,
            "memory_exit_codes": list(self.memory_exit_codes),
            "log_level": self.log_level,
        }
