from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from captionburn.domain.timed_text import Segment, SubtitleStyle
from captionburn.exceptions import FormatError
from captionburn.formats.ass import encode_ass, resolve_ass_style
from captionburn.formats.srt import encode_srt
from captionburn.formats.vtt import encode_vtt


@dataclass(frozen=True)
class SubtitleFormat:
    name: str
    extension: str
    media_type: str
    encoder: Callable[[Sequence[Segment], SubtitleStyle], str]


SUBTITLE_FORMATS: dict[str, SubtitleFormat] = {
    "srt": SubtitleFormat("srt", ".srt", "application/x-subrip", lambda segs, _style: encode_srt(segs)),
    "vtt": SubtitleFormat("vtt", ".vtt", "text/vtt", lambda segs, _style: encode_vtt(segs)),
    "ass": SubtitleFormat("ass", ".ass", "text/x-ssa", encode_ass),
}


def get_format(name: str) -> SubtitleFormat:
    key = (name or "").strip().lower().lstrip(".")
    if key not in SUBTITLE_FORMATS:
        valid = ", ".join(SUBTITLE_FORMATS)
        raise FormatError(f"Unknown subtitle format '{name}'. Use one of: {valid}.")
    return SUBTITLE_FORMATS[key]


def encode(name: str, segments: Sequence[Segment], style: SubtitleStyle | None = None) -> str:
    fmt = get_format(name)
    return fmt.encoder(segments, style or SubtitleStyle())


__all__ = [
    "SUBTITLE_FORMATS",
    "SubtitleFormat",
    "encode",
    "encode_ass",
    "encode_srt",
    "encode_vtt",
    "get_format",
    "resolve_ass_style",
]
