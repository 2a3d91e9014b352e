"""
Pipeline orchestration for Reelsmith.

The pipeline executes a single end-to-end assembly job:

1) Validate and normalize transcript words
2) Segment the transcript (persist segments + formatted transcript)
3) Acquire one image per segment (external ImageProvider)
4) Check image timing against segments
5) Compose the final video (single pass or chunked)

Responsibilities:
- Coordinate service execution order
- Preserve explicit state via Artifacts, including on failure
- Write the run manifest whether the job succeeds or not

Does NOT:
- Transcribe audio or generate image queries (external collaborators)
- Own filesystem paths (Workspace does)
- Retry failed steps
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from reelsmith.domain.artifacts import Artifacts, ImagesArtifact, SegmentsArtifact
from reelsmith.domain.contracts import ImageProvider
from reelsmith.domain.job import Job
from reelsmith.domain.models import Word
from reelsmith.exceptions import ConfigurationError, ReelsmithError
from reelsmith.services.compose import ComposeService
from reelsmith.services.segmentation import SegmentationService
from reelsmith.services.transcript import check_image_timing, normalize_words, validate_words
from reelsmith.utils.logging import get_logger
from reelsmith.utils.manifest import write_run_manifest
from reelsmith.utils.timing import StepTimer, utc_now

log = get_logger(__name__)


class Pipeline:
    """
    Orchestrates the Reelsmith assembly steps using composable services.

    Notes:
    - The image provider has no default: images come from outside the
      core (search, generation, or a manifest file for the CLI).
    - Other services are injected or defaulted for testability.
    """

    def __init__(
        self,
        *,
        segmentation: SegmentationService | None = None,
        images: ImageProvider | None = None,
        compose: ComposeService | None = None,
    ) -> None:
        self.segmentation = segmentation or SegmentationService()
        self.images = images
        self.compose = compose or ComposeService()

    def _segment(self, job: Job, words: Sequence[Word]) -> tuple[list[Word], SegmentsArtifact]:
        validate_words(words)
        normalized = normalize_words(words)
        artifact = self.segmentation.generate(job, words=normalized)
        job.artifacts.segments = artifact
        return normalized, artifact

    def segment(self, job: Job, words: Sequence[Word]) -> SegmentsArtifact:
        """Validate, normalize and segment words without rendering anything."""
        _, artifact = self._segment(job, words)
        return artifact

    def run(self, job: Job, *, words: Sequence[Word], audio_path: str | Path) -> Job:
        """
        Run the pipeline once.

        Args:
            job: Execution context containing settings, style and workspace.
            words: Provider word list, in spoken order.
            audio_path: Narration audio the words were transcribed from.

        Returns:
            The same Job instance with populated Artifacts.
        """
        timer = StepTimer(clock=utc_now)
        clock = timer.clock
        started_at = clock()

        # Initialize artifacts early so partial failures still leave state behind.
        job.artifacts = Artifacts()

        try:
            with timer.step("segment_transcript"):
                normalized, segments = self._segment(job, words)

            with timer.step("acquire_images"):
                if self.images is None:
                    raise ConfigurationError("No image provider configured for this pipeline.")
                images = self.images.acquire(job, segments=segments.segments)
                mismatches = check_image_timing(images, segments.segments)
                job.artifacts.images = ImagesArtifact(images=tuple(images), mismatches=mismatches)

            with timer.step("compose_video"):
                result = self.compose.render(
                    job,
                    images=images,
                    audio_path=audio_path,
                    words=normalized,
                    segments=segments.segments,
                )
                job.artifacts.result = result
                job.artifacts.chunk_count = result.chunk_count

            return job
        except ReelsmithError as exc:
            job.artifacts.error = f"{exc.label()}: {exc.message}"
            raise
        finally:
            finished_at = clock()
            try:
                write_run_manifest(
                    job=job,
                    steps=timer.steps,
                    started_at=started_at,
                    finished_at=finished_at,
                )
            except (OSError, ValueError, TypeError) as exc:
                log.warning("Could not write run manifest: %s", exc)
