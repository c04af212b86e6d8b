from __future__ import annotations

from typing import Sequence

from captionburn.domain.timed_text import Segment
from captionburn.formats.common import format_clock_time, sanitize_cue_text

VTT_HEADER = "WEBVTT"


def format_vtt_time(seconds: float) -> str:
    # seconds -> "HH:MM:SS.mmm"
    return format_clock_time(seconds, separator=".")


def encode_vtt(segments: Sequence[Segment]) -> str:
    cues = [
        f"{format_vtt_time(segment.start)} --> {format_vtt_time(segment.end)}\n"
        f"{sanitize_cue_text(segment.text)}\n"
        for segment in segments
    ]
    return f"{VTT_HEADER}\n\n" + "\n".join(cues)
