from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from .document import DxfRecord
from .markup import element, escape
from .text import FontChange, HeightChange, MTextContent, Oblique, Paragraph, Stacked
from .util import format_number, group_number, parse_number, round_to

LINE_HEIGHT = 1.25

_ATTACHMENT_BASELINES = ("text-before-edge", "central", "text-after-edge")
_ATTACHMENT_ANCHORS = (None, "middle", "end")


@dataclass(frozen=True)
class Font:
    family: str
    weight: int | None = None
    style: str | None = None
    scale: float | None = None


FontResolver = Callable[[Font], Mapping[str, Any]]


def attachment_point(value: str | None) -> tuple[str | None, str | None]:
    n = parse_number(value)
    if math.isnan(n) or not 1 <= n <= 9 or not n.is_integer():
        return None, None
    index = int(n) - 1
    return _ATTACHMENT_BASELINES[index // 3], _ATTACHMENT_ANCHORS[index % 3]


def _yx_to_angle(y: float, x: float) -> float:
    return round_to(math.degrees(math.atan2(y or 0, x or 0)), 5) or 0.0


def mtext_angle(mtext: DxfRecord) -> float:
    angle = group_number(mtext, 50)
    if not math.isnan(angle):
        return round_to(angle, 5) or 0.0
    x = group_number(mtext, 11)
    y = group_number(mtext, 21)
    if math.isnan(x) and math.isnan(y):
        return 0.0
    return _yx_to_angle(0 if math.isnan(y) else y, 0 if math.isnan(x) else x)


def _resolve_font(content: FontChange, resolve_font: FontResolver | None) -> Font:
    font = Font(family=content.family, weight=700 if content.bold else 400, style="italic" if content.italic else None)
    if resolve_font is None:
        return font
    override = resolve_font(font)
    return dataclasses.replace(font, **dict(override)) if override else font


def _font_size(content: HeightChange) -> str:
    if content.relative:
        return f"{format_number(content.value)}em"
    return format_number(content.value)


def mtext_contents(
    contents: Sequence[MTextContent],
    resolve_font: FontResolver | None = None,
    line_x: float | None = None,
) -> str:
    rest = ""
    for content in reversed(contents):
        if isinstance(content, str):
            rest = escape(content) + rest
        elif isinstance(content, list):
            rest = mtext_contents(content, resolve_font, line_x) + rest
        elif isinstance(content, Stacked):
            rest = element(
                "tspan",
                None,
                element("tspan", {"dy": "-.5em"}, escape(content.numerator))
                + element(
                    "tspan",
                    {"dy": "1em", "dx": f"{format_number(len(content.numerator) / -2)}em"},
                    escape(content.denominator),
                ),
            ) + rest
        elif isinstance(content, FontChange):
            font = _resolve_font(content, resolve_font)
            rest = element(
                "tspan",
                {
                    "font-family": font.family,
                    "font-weight": font.weight,
                    "font-style": font.style,
                    "font-size": f"{format_number(font.scale)}em" if font.scale and font.scale != 1 else None,
                },
                rest,
            )
        elif isinstance(content, HeightChange):
            rest = element("tspan", {"font-size": _font_size(content)}, rest)
        elif isinstance(content, Oblique):
            if content.angle:
                rest = element("tspan", {"font-style": f"oblique {format_number(content.angle)}deg"}, rest)
        elif isinstance(content, Paragraph):
            rest = element("tspan", {"x": line_x, "dy": f"{format_number(LINE_HEIGHT)}em"}, rest)
    return rest
