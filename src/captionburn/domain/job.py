from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from captionburn.domain.workspace import Workspace


class JobState(str, Enum):
    CREATED = "created"
    STAGED = "staged"
    ENCODING = "encoding"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CLEANED = "cleaned"


_TRANSITIONS: dict[JobState, set[JobState]] = {
    JobState.CREATED: {JobState.STAGED, JobState.FAILED},
    JobState.STAGED: {JobState.ENCODING, JobState.FAILED},
    JobState.ENCODING: {JobState.SUCCEEDED, JobState.FAILED},
    JobState.SUCCEEDED: {JobState.CLEANED},
    JobState.FAILED: {JobState.CLEANED},
    JobState.CLEANED: set(),
}

ProgressCallback = Callable[[str, JobState], None]


@dataclass
class RenderJob:
    """One render request and the workspace it exclusively owns."""

    workspace: Workspace
    video_path: Path
    subtitle_path: Path
    output_path: Path
    srt_path: Path | None = None
    state: JobState = JobState.CREATED
    history: list[JobState] = field(default_factory=lambda: [JobState.CREATED])
    on_progress: ProgressCallback | None = None

    @classmethod
    def create(
        cls,
        workdir: str | Path,
        *,
        video_extension: str,
        write_srt: bool = False,
        on_progress: ProgressCallback | None = None,
    ) -> "RenderJob":
        workspace = Workspace.create(workdir)
        job = cls(
            workspace=workspace,
            video_path=workspace.input_video(video_extension),
            subtitle_path=workspace.subtitles_ass,
            output_path=workspace.output_mp4,
            srt_path=workspace.subtitles_srt if write_srt else None,
            on_progress=on_progress,
        )
        try:
            job._notify()
        except BaseException:
            workspace.remove()
            raise
        return job

    @property
    def job_id(self) -> str:
        return self.workspace.job_id

    @property
    def work_dir(self) -> Path:
        return self.workspace.root

    @property
    def finished(self) -> bool:
        return self.state in {JobState.SUCCEEDED, JobState.FAILED, JobState.CLEANED}

    def advance(self, state: JobState) -> None:
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal job transition {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)
        self._notify()

    def _notify(self) -> None:
        if self.on_progress is not None:
            self.on_progress(self.job_id, self.state)
