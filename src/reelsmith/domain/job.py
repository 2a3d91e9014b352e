from __future__ import annotations

from dataclasses import dataclass, field

from reelsmith.config.settings import Settings
from reelsmith.domain.artifacts import Artifacts
from reelsmith.domain.workspace import Workspace
from reelsmith.styles.base import VideoStyle


@dataclass
class Job:
    settings: Settings
    workspace: Workspace
    style: VideoStyle
    artifacts: Artifacts = field(default_factory=Artifacts)
    cli_overrides: dict[str, str] = field(default_factory=dict)

    @property
    def chunk_size(self) -> int:
        return self.settings.chunk_size or self.style.images_per_chunk
