from __future__ import annotations

import math
import re

_LINE_BREAKS = re.compile(r"\r\n|\r|\n")
_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")


def sanitize_cue_text(text: str) -> str:
    """Collapse every line break to one space and trim; multi-line cues are not supported."""
    return _LINE_BREAKS.sub(" ", text).strip()


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def split_timestamp(seconds: float) -> tuple[int, int, int, float]:
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)
    return hours, minutes, secs, seconds % 1


def format_clock_time(seconds: float, *, separator: str) -> str:
    # HH:MM:SS<sep>mmm, every field floored
    hours, minutes, secs, frac = split_timestamp(seconds)
    millis = int(math.floor(frac * 1000))
    return f"{hours:02d}:{minutes:02d}:{secs:02d}{separator}{millis:03d}"


def is_hex_color(value: str) -> bool:
    return isinstance(value, str) and bool(_HEX_COLOR.match(value))
