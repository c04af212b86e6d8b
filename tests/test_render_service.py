from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from captionburn.domain.job import JobState
from captionburn.domain.timed_text import SubtitleStyle
from captionburn.exceptions import (
    EncodeFailed,
    EncoderUnavailable,
    FormatError,
    InvalidRequest,
    RenderBusy,
    ValidationError,
)
from captionburn.services.render import RenderRequest, RenderService
from captionburn.utils import ffmpeg

VIDEO = b"\x00\x00\x00\x18ftypmp42fake-video"


def _request(base_segments, **overrides) -> RenderRequest:
    fields = dict(
        video=VIDEO,
        filename="clip.mp4",
        segments=base_segments,
        style=SubtitleStyle(),
        enabled=True,
    )
    fields.update(overrides)
    return RenderRequest(**fields)


def _fake_encoder(monkeypatch, *, output: bytes = b"rendered", on_run=None) -> list[dict]:
    calls: list[dict] = []

    def fake_run(cmd: list[str], *, stderr_path=None, timeout=None) -> None:
        workdir = Path(cmd[cmd.index("-i") + 1]).parent
        calls.append(
            {
                "cmd": cmd,
                "timeout": timeout,
                "workdir": workdir,
                "files": sorted(p.name for p in workdir.iterdir()),
                "input": Path(cmd[cmd.index("-i") + 1]).read_bytes(),
                "ass": (workdir / "captions.ass").read_text(encoding="utf-8"),
            }
        )
        if on_run is not None:
            on_run(cmd)
        Path(cmd[-1]).write_bytes(output)

    monkeypatch.setattr(ffmpeg, "ensure_ffmpeg", lambda binary="ffmpeg": binary)
    monkeypatch.setattr(ffmpeg, "run_ffmpeg", fake_run)
    return calls


def test_render_returns_mp4_and_removes_workspace(monkeypatch, settings, segments) -> None:
    calls = _fake_encoder(monkeypatch, output=b"captioned")
    states: list[JobState] = []

    result = RenderService(settings).render(
        _request(segments),
        on_progress=lambda _job_id, state: states.append(state),
    )

    assert result.content == b"captioned"
    assert result.media_type == "video/mp4"
    assert result.filename == "video-with-captions.mp4"
    assert set(result.timings) == {"stage", "encode_subtitles", "encode_video", "collect"}

    call = calls[0]
    assert call["input"] == VIDEO
    assert call["files"] == ["captions.ass", "captions.srt", "input.mp4"]
    assert "Hello World" in call["ass"]
    assert call["workdir"].name == result.job_id
    assert call["timeout"] == settings.encode_timeout_seconds
    assert call["cmd"][call["cmd"].index("-c:a") + 1] == "copy"
    assert not call["workdir"].exists()
    assert states == [
        JobState.CREATED,
        JobState.STAGED,
        JobState.ENCODING,
        JobState.SUCCEEDED,
        JobState.CLEANED,
    ]


def test_success_cleanup_can_be_deferred(monkeypatch, settings, segments) -> None:
    calls = _fake_encoder(monkeypatch)
    scheduled = []

    RenderService(settings).render(_request(segments), defer_cleanup=scheduled.append)

    workdir = calls[0]["workdir"]
    assert workdir.exists()
    assert len(scheduled) == 1
    scheduled[0]()
    assert not workdir.exists()


def test_srt_copy_is_optional(monkeypatch, settings, segments) -> None:
    settings.write_srt_copy = False
    calls = _fake_encoder(monkeypatch)
    RenderService(settings).render(_request(segments))
    assert calls[0]["files"] == ["captions.ass", "input.mp4"]


@pytest.mark.parametrize(
    ("filename", "staged"),
    [("holiday.MOV", "input.mov"), ("payload.sh", "input.mp4"), (None, "input.mp4")],
)
def test_staged_video_keeps_only_whitelisted_extensions(monkeypatch, settings, segments, filename, staged) -> None:
    calls = _fake_encoder(monkeypatch)
    RenderService(settings).render(_request(segments, filename=filename))
    assert staged in calls[0]["files"]


def test_failed_encode_still_removes_workspace(monkeypatch, settings, segments) -> None:
    states: list[JobState] = []

    def boom(cmd):  # noqa: ANN001
        raise EncodeFailed("ffmpeg exited with code 1.", returncode=1, stderr="moov atom not found")

    calls = _fake_encoder(monkeypatch, on_run=boom)

    with pytest.raises(EncodeFailed) as excinfo:
        RenderService(settings).render(
            _request(segments),
            on_progress=lambda _job_id, state: states.append(state),
        )

    assert excinfo.value.detail == "moov atom not found"
    assert not calls[0]["workdir"].exists()
    assert states[-2:] == [JobState.FAILED, JobState.CLEANED]


def test_missing_encoder_is_reported_and_cleaned(monkeypatch, settings, segments) -> None:
    def missing(binary="ffmpeg"):  # noqa: ANN001
        raise EncoderUnavailable("Missing required dependency 'ffmpeg'.")

    monkeypatch.setattr(ffmpeg, "ensure_ffmpeg", missing)

    with pytest.raises(EncoderUnavailable):
        RenderService(settings).render(_request(segments))
    assert list(Path(settings.workdir).iterdir()) == []


def test_empty_output_is_an_encode_failure(monkeypatch, settings, segments) -> None:
    _fake_encoder(monkeypatch, output=b"")
    with pytest.raises(EncodeFailed, match="no output"):
        RenderService(settings).render(_request(segments))
    assert list(Path(settings.workdir).iterdir()) == []


def test_bad_color_aborts_before_encoder_runs(monkeypatch, settings, segments) -> None:
    calls = _fake_encoder(monkeypatch)
    with pytest.raises(FormatError):
        RenderService(settings).render(_request(segments, style=SubtitleStyle(background_color="black")))
    assert calls == []
    assert list(Path(settings.workdir).iterdir()) == []


def test_inverted_segment_is_rejected_before_any_work(monkeypatch, settings) -> None:
    calls = _fake_encoder(monkeypatch)
    with pytest.raises(ValidationError):
        RenderRequest.from_form(
            video=VIDEO,
            filename="clip.mp4",
            style_json=json.dumps(SubtitleStyle().to_dict()),
            segments_json=json.dumps([{"id": "1", "start": 5, "end": 3, "text": "backwards"}]),
            enabled="true",
        )
    assert calls == []
    assert not Path(settings.workdir).exists()


@pytest.mark.parametrize(
    "overrides",
    [
        {"enabled": False},
        {"video": b""},
        {"segments": []},
        {"style": None},
    ],
)
def test_incomplete_requests_are_rejected(monkeypatch, settings, segments, overrides) -> None:
    calls = _fake_encoder(monkeypatch)
    request = _request(segments, **overrides)
    with pytest.raises(InvalidRequest):
        RenderService(settings).render(request)
    assert calls == []


def test_from_form_parses_json_fields(segments) -> None:
    request = RenderRequest.from_form(
        video=VIDEO,
        filename="clip.webm",
        style_json=json.dumps({"fontSize": 30, "alignment": "right"}),
        segments_json=json.dumps([s.to_dict() for s in segments]),
        enabled="true",
    )
    assert request.enabled is True
    assert request.style.font_size == 30
    assert [s.id for s in request.segments] == ["a", "b"]


def test_from_form_rejects_malformed_json() -> None:
    with pytest.raises(InvalidRequest, match="segments"):
        RenderRequest.from_form(
            video=VIDEO,
            filename="clip.mp4",
            style_json="{}",
            segments_json="[{oops",
            enabled="true",
        )


def test_concurrent_jobs_use_isolated_workspaces(monkeypatch, settings, segments) -> None:
    barrier = threading.Barrier(2, timeout=5)
    calls = _fake_encoder(monkeypatch, on_run=lambda _cmd: barrier.wait())
    service = RenderService(settings)
    results = []
    errors = []

    def worker() -> None:
        try:
            results.append(service.render(_request(segments)))
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert errors == []
    assert len(results) == 2
    assert results[0].job_id != results[1].job_id
    workdirs = {call["workdir"] for call in calls}
    assert len(workdirs) == 2
    assert all(call["input"] == VIDEO for call in calls)
    assert not any(w.exists() for w in workdirs)


def test_failed_job_cleanup_does_not_touch_other_jobs(monkeypatch, settings, segments) -> None:
    release = threading.Event()
    started = threading.Event()
    lock = threading.Lock()
    runs = []

    def on_run(cmd):  # noqa: ANN001
        with lock:
            runs.append(cmd)
            first = len(runs) == 1
        if not first:
            raise EncodeFailed("ffmpeg exited with code 1.", returncode=1)
        started.set()
        release.wait(timeout=5)

    calls = _fake_encoder(monkeypatch, on_run=on_run)
    service = RenderService(settings)
    ok_results = []

    ok_thread = threading.Thread(target=lambda: ok_results.append(service.render(_request(segments))))
    ok_thread.start()
    assert started.wait(timeout=5)

    with pytest.raises(EncodeFailed):
        service.render(_request(segments))

    ok_workdir, failed_workdir = calls[0]["workdir"], calls[1]["workdir"]
    assert not failed_workdir.exists()
    assert (ok_workdir / "input.mp4").read_bytes() == VIDEO

    release.set()
    ok_thread.join(timeout=10)
    assert len(ok_results) == 1
    assert not ok_workdir.exists()


def test_admission_control_rejects_when_slots_are_busy(monkeypatch, settings, segments) -> None:
    settings.max_concurrent_renders = 1
    settings.queue_timeout_seconds = 0
    release = threading.Event()
    started = threading.Event()

    def hold(cmd):  # noqa: ANN001
        started.set()
        release.wait(timeout=5)

    _fake_encoder(monkeypatch, on_run=hold)
    service = RenderService(settings)
    results = []
    first = threading.Thread(target=lambda: results.append(service.render(_request(segments))))
    first.start()
    assert started.wait(timeout=5)

    with pytest.raises(RenderBusy):
        service.render(_request(segments))
    remaining = list(Path(settings.workdir).iterdir())
    assert len(remaining) == 1

    release.set()
    first.join(timeout=10)
    assert len(results) == 1
    assert list(Path(settings.workdir).iterdir()) == []


def test_timeout_setting_is_passed_to_encoder(monkeypatch, settings, segments) -> None:
    settings.encode_timeout_seconds = 0
    calls = _fake_encoder(monkeypatch)
    RenderService(settings).render(_request(segments))
    assert calls[0]["timeout"] is None



@pytest.mark.parametrize("raw", ["null", "5", '"hello"', '{"id": "1"}'])
def test_from_form_rejects_segments_that_are_not_a_list(raw) -> None:
    with pytest.raises(ValidationError, match="must be a list"):
        RenderRequest.from_form(
            video=VIDEO,
            filename="clip.mp4",
            style_json="{}",
            segments_json=raw,
            enabled="true",
        )


@pytest.mark.parametrize("failing_state", [JobState.CREATED, JobState.SUCCEEDED, JobState.CLEANED])
def test_raising_progress_callback_still_removes_workspace(
    monkeypatch, settings, segments, failing_state
) -> None:
    _fake_encoder(monkeypatch)

    def on_progress(_job_id, state):  # noqa: ANN001
        if state is failing_state:
            raise RuntimeError(f"observer broke on {state.value}")

    with pytest.raises(RuntimeError, match="observer broke"):
        RenderService(settings).render(_request(segments), on_progress=on_progress)
    assert list(Path(settings.workdir).iterdir()) == []


def test_progress_callback_failing_on_failed_state_still_cleans_up(monkeypatch, settings, segments) -> None:
    def boom(cmd):  # noqa: ANN001
        raise EncodeFailed("ffmpeg exited with code 1.", returncode=1)

    _fake_encoder(monkeypatch, on_run=boom)

    def on_progress(_job_id, state):  # noqa: ANN001
        if state is JobState.FAILED:
            raise RuntimeError("observer broke on failed")

    with pytest.raises(RuntimeError, match="observer broke"):
        RenderService(settings).render(_request(segments), on_progress=on_progress)
    assert list(Path(settings.workdir).iterdir()) == []
