"""
Timed-text model for CaptionBurn.

Segments are the timed units produced by transcription/translation; a
SubtitleStyle is the visual configuration applied to every cue of a render.

Both are immutable value objects. Out-of-range values are rejected with
ValidationError rather than clamped.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

from captionburn.exceptions import ValidationError

FONT_SIZE_MIN = 12
FONT_SIZE_MAX = 48


class Alignment(str, Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class Position(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"


def _as_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"'{field_name}' must be a number, got a boolean.")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"'{field_name}' must be a number, got {value!r}.") from None
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"'{field_name}' must be finite, got {value!r}.")
    return number


def _as_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in {"true", "false"}:
        return value.lower() == "true"
    raise ValidationError(f"'{field_name}' must be a boolean, got {value!r}.")


def _check_range(value: float, low: float, high: float, field_name: str) -> None:
    if not low <= value <= high:
        raise ValidationError(f"'{field_name}' must be between {low:g} and {high:g}, got {value:g}.")


@dataclass(frozen=True)
class Segment:
    id: str
    start: float
    end: float
    text: str

    def __post_init__(self) -> None:
        start = _as_float(self.start, "start")
        end = _as_float(self.end, "end")
        if start < 0:
            raise ValidationError(f"Segment {self.id!r} starts before zero ({start:g}s).")
        if start >= end:
            raise ValidationError(
                f"Segment {self.id!r} must start before it ends (start={start:g}, end={end:g})."
            )
        if not isinstance(self.text, str):
            raise ValidationError(f"Segment {self.id!r} text must be a string.")
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def duration(self) -> float:
        return self.end - self.start

    @classmethod
    def from_dict(cls, data: dict, *, default_id: str | None = None) -> "Segment":
        if not isinstance(data, dict):
            raise ValidationError(f"Segment must be an object, got {type(data).__name__}.")
        missing = [key for key in ("start", "end", "text") if key not in data]
        if missing:
            raise ValidationError(f"Segment is missing field(s): {', '.join(missing)}.")
        seg_id = data.get("id", default_id)
        return cls(
            id=str(seg_id) if seg_id is not None else "",
            start=data["start"],
            end=data["end"],
            text=data["text"],
        )

    def to_dict(self) -> dict:
        return asdict(self)


def parse_segments(items: Any) -> list[Segment]:
    """Validate a list of raw segment dicts, reporting the failing position."""
    if not isinstance(items, (list, tuple)):
        raise ValidationError("Segments must be a list of objects.")
    segments: list[Segment] = []
    for index, item in enumerate(items, start=1):
        if isinstance(item, Segment):
            segments.append(item)
            continue
        try:
            segments.append(Segment.from_dict(item, default_id=str(index)))
        except ValidationError as exc:
            raise ValidationError(f"Segment #{index}: {exc.message}") from exc
    return segments


# camelCase wire name -> attribute name
_STYLE_KEYS = {
    "fontSize": "font_size",
    "fontFamily": "font_family",
    "color": "color",
    "backgroundColor": "background_color",
    "opacity": "opacity",
    "bold": "bold",
    "italic": "italic",
    "alignment": "alignment",
    "position": "position",
    "noBackground": "no_background",
    "customPosition": "custom_position",
    "xPosition": "x_position",
    "yPosition": "y_position",
}


@dataclass(frozen=True)
class SubtitleStyle:
    """
    Visual configuration shared by every cue of a render.

    Colors are kept as given (`#RRGGBB`); they are checked by the encoders,
    which raise FormatError for malformed values.
    """

    font_size: float = 20
    font_family: str = "Arial, sans-serif"
    color: str = "#FFFFFF"
    background_color: str = "#000000"
    opacity: float = 0.7
    bold: bool = False
    italic: bool = False
    alignment: Alignment = Alignment.CENTER
    position: Position = Position.BOTTOM
    no_background: bool = False
    custom_position: bool = False
    x_position: float = 50
    y_position: float = 90

    def __post_init__(self) -> None:
        font_size = _as_float(self.font_size, "fontSize")
        _check_range(font_size, FONT_SIZE_MIN, FONT_SIZE_MAX, "fontSize")
        if font_size.is_integer():
            font_size = int(font_size)
        opacity = _as_float(self.opacity, "opacity")
        _check_range(opacity, 0.0, 1.0, "opacity")
        x_position = _as_float(self.x_position, "xPosition")
        y_position = _as_float(self.y_position, "yPosition")
        _check_range(x_position, 0, 100, "xPosition")
        _check_range(y_position, 0, 100, "yPosition")

        try:
            alignment = Alignment(self.alignment)
        except ValueError:
            raise ValidationError(
                f"'alignment' must be one of left, center, right; got {self.alignment!r}."
            ) from None
        try:
            position = Position(self.position)
        except ValueError:
            raise ValidationError(f"'position' must be top or bottom; got {self.position!r}.") from None

        if not isinstance(self.font_family, str) or not self.font_family.strip():
            raise ValidationError("'fontFamily' must be a non-empty string.")
        for name in ("color", "background_color"):
            if not isinstance(getattr(self, name), str):
                raise ValidationError(f"'{name}' must be a string.")

        object.__setattr__(self, "font_size", font_size)
        object.__setattr__(self, "opacity", opacity)
        object.__setattr__(self, "x_position", x_position)
        object.__setattr__(self, "y_position", y_position)
        object.__setattr__(self, "alignment", alignment)
        object.__setattr__(self, "position", position)
        object.__setattr__(self, "bold", _as_bool(self.bold, "bold"))
        object.__setattr__(self, "italic", _as_bool(self.italic, "italic"))
        object.__setattr__(self, "no_background", _as_bool(self.no_background, "noBackground"))
        object.__setattr__(self, "custom_position", _as_bool(self.custom_position, "customPosition"))

    def replace(self, **changes: Any) -> "SubtitleStyle":
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict | None) -> "SubtitleStyle":
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValidationError(f"Subtitle style must be an object, got {type(data).__name__}.")
        kwargs = {attr: data[key] for key, attr in _STYLE_KEYS.items() if key in data}
        return cls(**kwargs)

    def to_dict(self) -> dict:
        out = {}
        for key, attr in _STYLE_KEYS.items():
            value = getattr(self, attr)
            out[key] = value.value if isinstance(value, Enum) else value
        return out
