from __future__ import annotations

import importlib
import sys
import tempfile
from pathlib import Path

from captionburn.config.settings import Settings
from captionburn.utils import ffmpeg


def _module_available(name: str) -> bool:
    try:
        importlib.import_module(name)
    except ImportError:
        return False
    return True


def _check_writable(path: Path) -> bool:
    try:
        path.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(dir=path, delete=True):
            return True
    except OSError:
        return False


def _get_version() -> str:
    try:
        import importlib.metadata

        return importlib.metadata.version("captionburn")
    except importlib.metadata.PackageNotFoundError:
        return "unknown"


def _status_line(ok: bool, label: str, detail: str = "") -> str:
    icon = "✅" if ok else "❌"
    return f"{icon} {label}{detail}"


def _warn_line(label: str, detail: str = "") -> str:
    return f"⚠️ {label}{detail}"


def collect_report(settings: Settings) -> tuple[bool, list[str]]:
    required_ok = True
    lines: list[str] = ["CaptionBurn Doctor", ""]

    python_version = sys.version.split()[0]
    lines.append(_status_line(True, "Python", f": {python_version}"))
    lines.append(_status_line(True, "CaptionBurn version", f": {_get_version()}"))

    workdir = Path(settings.workdir).expanduser().resolve()
    writable = _check_writable(workdir)
    if not writable:
        required_ok = False
    lines.append(_status_line(writable, "Workdir writable", f": {workdir}"))

    version = ffmpeg.ffmpeg_version(settings.ffmpeg_binary)
    if version is None:
        required_ok = False
        lines.append(_status_line(False, "ffmpeg", f" (not found: {settings.ffmpeg_binary})"))
    else:
        lines.append(_status_line(True, "ffmpeg", f": {version}"))

    if _module_available("uvicorn"):
        lines.append(_status_line(True, "uvicorn", " (available)"))
    else:
        lines.append(_warn_line("uvicorn", " (not installed; `captionburn serve` unavailable)"))

    timeout = settings.effective_timeout
    lines.append(
        _status_line(
            True,
            "Render limits",
            f": {settings.max_concurrent_renders} concurrent, "
            f"timeout {f'{timeout:g}s' if timeout else 'disabled'}",
        )
    )
    return required_ok, lines


def run_doctor(settings: Settings) -> int:
    required_ok, lines = collect_report(settings)
    print("\n".join(lines))
    return 0 if required_ok else 1
