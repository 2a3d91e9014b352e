from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path


def _run_stamp() -> str:
    return str(int(time.time() * 1000))


@dataclass(frozen=True)
class Workspace:
    root: Path
    run_id: str

    @classmethod
    def create(cls, workdir: str, run_id: str | None = None) -> "Workspace":
        rid = run_id or _run_stamp()
        root = Path(workdir).expanduser().resolve() / rid
        root.mkdir(parents=True, exist_ok=True)
        (root / "tmp").mkdir(exist_ok=True)
        return cls(root=root, run_id=rid)

    def path(self, name: str) -> Path:
        p = self.root / name
        p.parent.mkdir(parents=True, exist_ok=True)
        return p

    @property
    def tmp_dir(self) -> Path:
        p = self.root / "tmp"
        p.mkdir(parents=True, exist_ok=True)
        return p

    @property
    def segments_json(self) -> Path:
        return self.path("segments.json")

    @property
    def transcript_txt(self) -> Path:
        return self.path("transcript.txt")

    @property
    def subtitles_ass(self) -> Path:
        return self.path("captions.ass")

    @property
    def output_mp4(self) -> Path:
        return self.path("final.mp4")

    @property
    def run_manifest(self) -> Path:
        return self.path("run.json")

    # Chunk artifacts live side by side in tmp/ so the concat list can
    # reference them by bare file name.
    def chunk_video(self, index: int) -> Path:
        return self.path(f"tmp/chunk_{self.run_id}_{index:03d}.mp4")

    def chunk_subtitles(self, index: int) -> Path:
        return self.path(f"tmp/captions_{self.run_id}_{index:03d}.ass")

    @property
    def concat_list(self) -> Path:
        return self.path(f"tmp/concat_{self.run_id}.txt")

    def stderr_log(self, label: str) -> Path:
        return self.path(f"tmp/ffmpeg_{self.run_id}_{label}.stderr.txt")
