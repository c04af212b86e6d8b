from __future__ import annotations

from typing import Sequence

from captionburn.domain.timed_text import Segment
from captionburn.formats.common import format_clock_time, sanitize_cue_text


def format_srt_time(seconds: float) -> str:
    # seconds -> "HH:MM:SS,mmm"
    return format_clock_time(seconds, separator=",")


def encode_srt(segments: Sequence[Segment]) -> str:
    blocks = []
    for index, segment in enumerate(segments, start=1):
        blocks.append(
            f"{index}\n"
            f"{format_srt_time(segment.start)} --> {format_srt_time(segment.end)}\n"
            f"{sanitize_cue_text(segment.text)}\n"
        )
    return "\n".join(blocks)
