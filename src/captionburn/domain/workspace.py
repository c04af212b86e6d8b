from __future__ import annotations

import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path

DEFAULT_VIDEO_EXTENSION = ".mp4"


def safe_video_extension(filename: str | None, allowed: list[str] | tuple[str, ...]) -> str:
    """Return the upload's extension if whitelisted, else `.mp4`."""
    if not filename:
        return DEFAULT_VIDEO_EXTENSION
    suffix = Path(filename).suffix.lower()
    allowed_lower = {ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in allowed}
    if suffix in allowed_lower:
        return suffix
    return DEFAULT_VIDEO_EXTENSION


@dataclass(frozen=True)
class Workspace:
    root: Path
    job_id: str

    @classmethod
    def create(cls, workdir: str | Path, job_id: str | None = None) -> "Workspace":
        jid = job_id or str(uuid.uuid4())
        root = Path(workdir).expanduser().resolve() / jid
        # exist_ok=False: a job never adopts another job's directory
        root.mkdir(parents=True, exist_ok=False)
        return cls(root=root, job_id=jid)

    def path(self, name: str) -> Path:
        return self.root / name

    def input_video(self, extension: str = DEFAULT_VIDEO_EXTENSION) -> Path:
        return self.path(f"input{extension}")

    @property
    def subtitles_ass(self) -> Path:
        return self.path("captions.ass")

    @property
    def subtitles_srt(self) -> Path:
        return self.path("captions.srt")

    @property
    def output_mp4(self) -> Path:
        return self.path("output.mp4")

    @property
    def ffmpeg_stderr(self) -> Path:
        return self.path("ffmpeg.stderr.txt")

    def exists(self) -> bool:
        return self.root.exists()

    def remove(self) -> None:
        shutil.rmtree(self.root, ignore_errors=False)
