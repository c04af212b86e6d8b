"""
Render job orchestration for CaptionBurn.

Burns styled captions into a source video:

1) Create a UUID-keyed workspace
2) Stage the uploaded video (whitelisted extension)
3) Encode segments + style to ASS (and optionally SRT)
4) Run ffmpeg: burn the ASS file, stream-copy audio
5) Read the output into memory
6) Remove the workspace

Responsibilities:
- Own the workspace for the whole job and always remove it
- Bound the number of concurrent ffmpeg processes
- Map process failures to EncoderUnavailable / EncodeFailed / EncodeTimeout

Does NOT:
- Transcribe or translate
- Retry failed encodes (callers resubmit)
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from captionburn.config.settings import Settings
from captionburn.domain.job import JobState, ProgressCallback, RenderJob
from captionburn.domain.timed_text import Segment, SubtitleStyle, parse_segments
from captionburn.domain.workspace import safe_video_extension
from captionburn.exceptions import (
    CaptionBurnError,
    EncodeFailed,
    InvalidRequest,
    RenderBusy,
    WorkspaceIOError,
)
from captionburn.formats.ass import encode_ass
from captionburn.formats.srt import encode_srt
from captionburn.utils import ffmpeg
from captionburn.utils.logging import get_logger
from captionburn.utils.timing import StepTimer

log = get_logger(__name__)

OUTPUT_MEDIA_TYPE = "video/mp4"
OUTPUT_FILENAME = "video-with-captions.mp4"

CleanupScheduler = Callable[[Callable[[], None]], None]


@dataclass(frozen=True)
class RenderRequest:
    video: bytes | None
    filename: str | None
    segments: Sequence[Segment] | None
    style: SubtitleStyle | None
    enabled: bool = True

    def validate(self) -> None:
        missing = []
        if not self.video:
            missing.append("video")
        if self.style is None:
            missing.append("subtitle style")
        if not self.segments:
            missing.append("segments")
        if missing:
            raise InvalidRequest(f"Missing required data for video rendering: {', '.join(missing)}.")
        if not self.enabled:
            raise InvalidRequest("Subtitles are disabled; there is nothing to render.")

    @classmethod
    def from_form(
        cls,
        *,
        video: bytes | None,
        filename: str | None,
        style_json: str | None,
        segments_json: str | None,
        enabled: bool | str | None,
    ) -> "RenderRequest":
        """Build a request from the multipart form representation (JSON-encoded fields)."""
        if isinstance(enabled, str):
            enabled = enabled.strip().lower() == "true"
        style = None
        segments = None
        if style_json:
            style = SubtitleStyle.from_dict(_load_json(style_json, "subtitleStyle"))
        if segments_json:
            segments = parse_segments(_load_json(segments_json, "segments"))
        return cls(
            video=video,
            filename=filename,
            segments=segments,
            style=style,
            enabled=bool(enabled),
        )


def _load_json(raw: str, field_name: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidRequest(f"'{field_name}' is not valid JSON: {exc.msg}.") from exc


@dataclass(frozen=True)
class RenderResult:
    content: bytes
    job_id: str
    media_type: str = OUTPUT_MEDIA_TYPE
    filename: str = OUTPUT_FILENAME
    timings: dict[str, float] = field(default_factory=dict)


class RenderService:
    """
    ffmpeg-based caption burner.

    Notes:
    - One RenderService is shared by all requests; its only shared state is
      the admission semaphore.
    - Jobs never share a workspace; collision is avoided by UUID directory names.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self._slots = threading.BoundedSemaphore(max(1, self.settings.max_concurrent_renders))

    def render(
        self,
        request: RenderRequest,
        *,
        on_progress: ProgressCallback | None = None,
        defer_cleanup: CleanupScheduler | None = None,
    ) -> RenderResult:
        request.validate()
        settings = self.settings

        extension = safe_video_extension(request.filename, settings.allowed_video_extensions)
        try:
            job = RenderJob.create(
                settings.workdir,
                video_extension=extension,
                write_srt=settings.write_srt_copy,
                on_progress=on_progress,
            )
        except OSError as exc:
            raise WorkspaceIOError("Unable to create render workspace.", detail=str(exc)) from exc

        log.info(
            "Render job %s: video=%s (%d KB), segments=%d",
            job.job_id,
            request.filename or "<unnamed>",
            round(len(request.video) / 1024),
            len(request.segments),
        )
        timer = StepTimer(label=f"job={job.job_id}")

        try:
            content = self._run(job, request, timer)
            job.advance(JobState.SUCCEEDED)
        except CaptionBurnError as exc:
            log.error("Render job %s failed: %s", job.job_id, exc.message)
            self._fail(job)
            raise
        except OSError as exc:
            log.error("Render job %s failed with I/O error: %s", job.job_id, exc)
            self._fail(job)
            raise WorkspaceIOError("Render workspace I/O failed.", detail=str(exc)) from exc
        except BaseException:
            self._fail(job)
            raise

        log.info("Render job %s succeeded (%d bytes) timings=%s", job.job_id, len(content), timer.durations())
        if defer_cleanup is not None:
            defer_cleanup(lambda: self._cleanup(job))
        else:
            self._cleanup(job)

        return RenderResult(content=content, job_id=job.job_id, timings=timer.durations())

    def _run(self, job: RenderJob, request: RenderRequest, timer: StepTimer) -> bytes:
        settings = self.settings

        with timer.step("stage"):
            job.video_path.write_bytes(request.video)

        # Encoder errors abort here, before ffmpeg sees a broken subtitle file.
        with timer.step("encode_subtitles"):
            job.subtitle_path.write_text(encode_ass(request.segments, request.style), encoding="utf-8")
            if job.srt_path is not None:
                job.srt_path.write_text(encode_srt(request.segments), encoding="utf-8")
        job.advance(JobState.STAGED)

        ffmpeg.ensure_ffmpeg(settings.ffmpeg_binary)
        cmd = ffmpeg.build_burn_cmd(
            job.video_path,
            job.subtitle_path,
            job.output_path,
            binary=settings.ffmpeg_binary,
            video_codec=settings.video_codec,
            preset=settings.video_preset,
            crf=settings.video_crf,
        )
        log.debug("ffmpeg cmd: %s", " ".join(cmd))

        with self._admit(job):
            job.advance(JobState.ENCODING)
            with timer.step("encode_video"):
                ffmpeg.run_ffmpeg(
                    cmd,
                    stderr_path=job.workspace.ffmpeg_stderr,
                    timeout=settings.effective_timeout,
                )

        with timer.step("collect"):
            if not job.output_path.exists() or job.output_path.stat().st_size == 0:
                raise EncodeFailed("ffmpeg reported success but produced no output.")
            return job.output_path.read_bytes()

    def _admit(self, job: RenderJob) -> "_Slot":
        timeout = self.settings.queue_timeout_seconds
        acquired = self._slots.acquire(timeout=timeout) if timeout > 0 else self._slots.acquire(blocking=False)
        if not acquired:
            raise RenderBusy(
                f"All {self.settings.max_concurrent_renders} render slots are busy; try again later."
            )
        log.debug("Render job %s acquired an encoder slot", job.job_id)
        return _Slot(self._slots)

    def _fail(self, job: RenderJob) -> None:
        try:
            if not job.finished:
                job.advance(JobState.FAILED)
        finally:
            self._cleanup(job)

    def _cleanup(self, job: RenderJob) -> None:
        try:
            job.workspace.remove()
        except FileNotFoundError:
            pass
        except OSError as exc:
            log.warning("Error cleaning up workspace %s: %s", job.work_dir, exc)
        if job.state is not JobState.CLEANED:
            job.advance(JobState.CLEANED)


class _Slot:
    def __init__(self, semaphore: threading.BoundedSemaphore) -> None:
        self._semaphore = semaphore

    def __enter__(self) -> None:
        return None

    def __exit__(self, *exc_info: object) -> None:
        self._semaphore.release()

