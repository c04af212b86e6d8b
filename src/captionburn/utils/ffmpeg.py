from __future__ import annotations

import subprocess
from pathlib import Path

from captionburn.exceptions import EncodeFailed, EncodeTimeout, EncoderUnavailable
from captionburn.utils.checks import require_binary
from captionburn.utils.logging import get_logger

log = get_logger(__name__)

STDERR_TAIL_CHARS = 4000

_OPTION_SPECIALS = "\\':"
_GRAPH_SPECIALS = "\\'[],;"


def ensure_ffmpeg(binary: str = "ffmpeg") -> str:
    return require_binary(binary)


def _backslash_escape(value: str, specials: str) -> str:
    return "".join("\\" + ch if ch in specials else ch for ch in value)


def _escape_filter_path(value: str) -> str:
    # Escaped twice: once for the filter's option parser, once for the filtergraph parser.
    return _backslash_escape(_backslash_escape(value, _OPTION_SPECIALS), _GRAPH_SPECIALS)


def build_subtitles_filter(subtitles_path: str) -> str:
    path_value = _escape_filter_path(subtitles_path)
    if subtitles_path.lower().endswith((".ass", ".ssa")):
        return f"ass={path_value}"
    return f"subtitles={path_value}"


def build_burn_cmd(
    video: str | Path,
    subtitles: str | Path,
    out: str | Path,
    *,
    binary: str = "ffmpeg",
    video_codec: str = "libx264",
    preset: str = "medium",
    crf: int = 20,
) -> list[str]:
    """Burn `subtitles` into `video`, stream-copying the audio into an MP4 at `out`."""
    return [
        binary,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-i",
        str(video),
        "-vf",
        build_subtitles_filter(str(subtitles)),
        "-c:v",
        video_codec,
        "-preset",
        preset,
        "-crf",
        str(crf),
        "-pix_fmt",
        "yuv420p",
        "-c:a",
        "copy",
        "-movflags",
        "+faststart",
        str(out),
    ]


def _tail(text: str | bytes | None) -> str:
    if text is None:
        return ""
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    return text[-STDERR_TAIL_CHARS:]


def run_ffmpeg(
    cmd: list[str],
    *,
    stderr_path: Path | None = None,
    timeout: float | None = None,
) -> subprocess.CompletedProcess[str]:
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
    except FileNotFoundError as exc:
        raise EncoderUnavailable(f"ffmpeg not found ({cmd[0]}). Install FFmpeg on the server.") from exc
    except PermissionError as exc:
        raise EncoderUnavailable(f"ffmpeg is not executable ({cmd[0]}).") from exc
    except subprocess.TimeoutExpired as exc:
        # subprocess.run has already killed the child at this point
        raise EncodeTimeout(
            f"ffmpeg did not finish within {timeout:g}s and was killed.",
            stderr=_tail(exc.stderr),
        ) from exc

    if stderr_path is not None:
        stderr_path.write_text(proc.stderr or "", encoding="utf-8")
    if proc.returncode != 0:
        raise EncodeFailed(
            f"ffmpeg exited with code {proc.returncode}.",
            returncode=proc.returncode,
            stderr=_tail(proc.stderr),
        )
    return proc


def ffmpeg_version(binary: str = "ffmpeg") -> str | None:
    try:
        proc = subprocess.run([binary, "-version"], capture_output=True, text=True)
    except OSError:
        return None
    if proc.returncode != 0:
        return None
    out = proc.stdout.strip()
    return out.splitlines()[0] if out else "available"
