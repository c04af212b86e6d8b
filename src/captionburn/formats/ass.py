"""
Advanced SubStation Alpha (ASS) encoder.

One computed "Default" style is written to the header and every segment
becomes one Dialogue event. Positions are resolved against a fixed
1280x720 canvas (PlayResX/PlayResY); the real video dimensions are not
known when the markup is generated, so custom positions are only exact
for 16:9 inputs.

Responsibilities:
- Convert CSS `#RRGGBB` colors to `&HAABBGGRR` tags
- Pick the border style (opaque box vs. outline + shadow)
- Map alignment/position to the numpad anchor grid
- Emit `\\pos` overrides for custom-positioned cues

Does NOT:
- Probe the video
- Write files
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from captionburn.domain.timed_text import Alignment, Position, Segment, SubtitleStyle
from captionburn.exceptions import FormatError
from captionburn.formats.common import (
    is_hex_color,
    round_half_up,
    sanitize_cue_text,
    split_timestamp,
)

CANVAS_WIDTH = 1280
CANVAS_HEIGHT = 720

BORDER_STYLE_OUTLINE = 1
BORDER_STYLE_OPAQUE_BOX = 3

ALPHA_OPAQUE = "00"
ALPHA_TRANSPARENT = "FF"

BOX_PADDING_RATIO = 0.075
OUTLINE_ONLY_WIDTH = 2
OUTLINE_ONLY_SHADOW = 1

MARGIN_H = 10
MARGIN_V_BOTTOM = 20
MARGIN_V_TOP = 50

_ROW_BASE = {Position.BOTTOM: 1, Position.TOP: 7}
_COLUMN_OFFSET = {Alignment.LEFT: 0, Alignment.CENTER: 1, Alignment.RIGHT: 2}
# \an5: centered on both axes, so \pos() names the middle of the cue
CUSTOM_POSITION_ANCHOR = 5

STYLE_FORMAT = (
    "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, "
    "OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, "
    "ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, "
    "Alignment, MarginL, MarginR, MarginV, Encoding"
)
EVENT_FORMAT = "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text"


@dataclass(frozen=True)
class AssStyle:
    font_name: str
    font_size: float
    primary_colour: str
    outline_colour: str
    back_colour: str
    bold: int
    italic: int
    border_style: int
    outline: int
    shadow: int
    alignment: int
    margin_l: int
    margin_r: int
    margin_v: int
    position_override: tuple[int, int] | None = None

    def style_line(self, name: str = "Default") -> str:
        return (
            f"Style: {name},"
            f"{self.font_name},"
            f"{self.font_size},"
            f"{self.primary_colour},{self.primary_colour},"
            f"{self.outline_colour},{self.back_colour},"
            f"{self.bold},{self.italic},0,0,100,100,0,0,"
            f"{self.border_style},{self.outline},{self.shadow},"
            f"{self.alignment},"
            f"{self.margin_l},{self.margin_r},{self.margin_v},1"
        )


def css_to_ass_color(css_hex: str, alpha: str = ALPHA_OPAQUE) -> str:
    """`#RRGGBB` -> `&HAABBGGRR`."""
    if not is_hex_color(css_hex):
        raise FormatError(f"Invalid color {css_hex!r}; expected #RRGGBB.")
    hex_value = css_hex[1:].upper()
    red, green, blue = hex_value[0:2], hex_value[2:4], hex_value[4:6]
    return f"&H{alpha}{blue}{green}{red}"


def opacity_to_alpha(opacity: float) -> str:
    # ASS alpha is inverted: 00 = opaque, FF = transparent
    return f"{round_half_up((1 - opacity) * 255):02X}"


def background_alpha(style: SubtitleStyle) -> str:
    if style.no_background:
        return ALPHA_TRANSPARENT
    return opacity_to_alpha(style.opacity)


def primary_font_name(font_family: str) -> str:
    first = font_family.split(",")[0].strip()
    return first.strip("'\"").strip()


def anchor_cell(alignment: Alignment, position: Position) -> int:
    return _ROW_BASE[position] + _COLUMN_OFFSET[alignment]


def custom_position_pixels(style: SubtitleStyle) -> tuple[int, int]:
    x = round_half_up(style.x_position / 100 * CANVAS_WIDTH)
    y = round_half_up(style.y_position / 100 * CANVAS_HEIGHT)
    return x, y


def resolve_ass_style(style: SubtitleStyle) -> AssStyle:
    """Compute the single header style (and per-cue position override) for a SubtitleStyle."""
    bg_alpha = background_alpha(style)
    primary = css_to_ass_color(style.color)
    back = css_to_ass_color(style.background_color, bg_alpha)

    if style.no_background:
        border_style = BORDER_STYLE_OUTLINE
        outline = OUTLINE_ONLY_WIDTH
        shadow = OUTLINE_ONLY_SHADOW
        # The outline carries legibility here, so it stays opaque.
        outline_colour = css_to_ass_color(style.background_color)
    else:
        border_style = BORDER_STYLE_OPAQUE_BOX
        outline = max(1, round_half_up(style.font_size * BOX_PADDING_RATIO))
        shadow = 0
        # libass paints the opaque box with OutlineColour.
        outline_colour = back

    if style.custom_position:
        alignment = CUSTOM_POSITION_ANCHOR
        override = custom_position_pixels(style)
    else:
        alignment = anchor_cell(style.alignment, style.position)
        override = None

    margin_v = MARGIN_V_BOTTOM if style.position is Position.BOTTOM else MARGIN_V_TOP

    return AssStyle(
        font_name=primary_font_name(style.font_family),
        font_size=style.font_size,
        primary_colour=primary,
        outline_colour=outline_colour,
        back_colour=back,
        bold=int(style.bold),
        italic=int(style.italic),
        border_style=border_style,
        outline=outline,
        shadow=shadow,
        alignment=alignment,
        margin_l=MARGIN_H,
        margin_r=MARGIN_H,
        margin_v=margin_v,
        position_override=override,
    )


def format_ass_time(seconds: float) -> str:
    # seconds -> "H:MM:SS.cc"
    hours, minutes, secs, frac = split_timestamp(seconds)
    centis = int(frac * 100)
    return f"{hours}:{minutes:02d}:{secs:02d}.{centis:02d}"


WORD_JOINER = "\u2060"


def escape_ass_text(text: str) -> str:
    # A word joiner after each backslash keeps \N, \n and \h literal for libass.
    text = text.replace("\\", "\\" + WORD_JOINER)
    return text.replace("{", r"\{").replace("}", r"\}")


def build_ass_header(resolved: AssStyle) -> str:
    lines = [
        "[Script Info]",
        "ScriptType: v4.00+",
        f"PlayResX: {CANVAS_WIDTH}",
        f"PlayResY: {CANVAS_HEIGHT}",
        "ScaledBorderAndShadow: yes",
        "",
        "[V4+ Styles]",
        STYLE_FORMAT,
        resolved.style_line(),
        "",
        "[Events]",
        EVENT_FORMAT,
    ]
    return "\n".join(lines) + "\n"


def build_dialogue(segment: Segment, resolved: AssStyle) -> str:
    text = escape_ass_text(sanitize_cue_text(segment.text))
    if resolved.position_override is not None:
        x, y = resolved.position_override
        text = f"{{\\an{resolved.alignment}\\pos({x},{y})}}{text}"
    return (
        f"Dialogue: 0,{format_ass_time(segment.start)},{format_ass_time(segment.end)},"
        f"Default,,0,0,0,,{text}"
    )


def encode_ass(segments: Sequence[Segment], style: SubtitleStyle) -> str:
    resolved = resolve_ass_style(style)
    events = [build_dialogue(segment, resolved) for segment in segments]
    return build_ass_header(resolved) + "\n".join(events)
