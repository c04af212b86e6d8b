from __future__ import annotations

import inspect
from pathlib import Path

import pytest
import typer.testing

from captionburn.config.settings import Settings
from captionburn.domain.timed_text import Segment, SubtitleStyle


def _patch_clirunner() -> None:
    if "mix_stderr" in inspect.signature(typer.testing.CliRunner).parameters:
        return

    class PatchedCliRunner(typer.testing.CliRunner):
        def __init__(self, *args, **kwargs):  # noqa: ANN002, ANN003
            kwargs.pop("mix_stderr", None)
            super().__init__(*args, **kwargs)

    typer.testing.CliRunner = PatchedCliRunner


_patch_clirunner()


@pytest.fixture
def segments() -> list[Segment]:
    return [
        Segment(id="a", start=1.5, end=3.25, text="Hello\nWorld"),
        Segment(id="b", start=4.0, end=6.0, text="  Second line  "),
    ]


@pytest.fixture
def style() -> SubtitleStyle:
    return SubtitleStyle()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    s = Settings()
    s.workdir = str(tmp_path / "jobs")
    s.queue_timeout_seconds = 1.0
    return s
