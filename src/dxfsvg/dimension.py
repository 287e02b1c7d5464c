from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Union

from .context import StyleContext
from .document import Drawing, DxfRecord, group_value, record_type
from .entity import Unsupported
from .geometry import Point, arrowhead, intersect_lines, solve_2x2, unit
from .text import parse_mtext_content, plain_text
from .util import format_number, group_number, parse_number, round_to, trim

# variable: (field, DIMSTYLE group code, header group code, default)
DIMENSION_VARIABLES: dict[str, tuple[str, int, int, float]] = {
    "DIMSCALE": ("scale", 40, 40, 1),
    "DIMASZ": ("arrow_size", 41, 40, 1),
    "DIMTP": ("tolerance_plus", 47, 40, 0),
    "DIMTM": ("tolerance_minus", 48, 40, 0),
    "DIMTOL": ("tolerance", 71, 70, 0),
    "DIMTXT": ("text_height", 140, 40, 1),
    "DIMLFAC": ("linear_factor", 144, 40, 1),
    "DIMCLRD": ("line_color", 176, 70, 0),
    "DIMCLRT": ("text_color", 178, 70, 0),
    "DIMDEC": ("decimals", 271, 70, 4),
}

_DIMENSION_LINE_EXTENSION = 2


@dataclass(frozen=True)
class DimensionStyleSet:
    scale: float = 1
    arrow_size: float = 1
    tolerance_plus: float = 0
    tolerance_minus: float = 0
    tolerance: float = 0
    text_height: float = 1
    linear_factor: float = 1
    line_color: float = 0
    text_color: float = 0
    decimals: float = 4

    @property
    def scaled_text_height(self) -> float:
        return self.text_height * self.scale

    @property
    def scaled_arrow_size(self) -> float:
        return self.arrow_size * self.scale


def collect_dimension_style_overrides(dimension: DxfRecord) -> dict[int, str]:
    overrides: dict[int, str] = {}
    for i in range(len(dimension) - 1):
        code, value = dimension[i]
        if code != 1000 or value.strip() != "DSTYLE":
            continue
        if dimension[i + 1][0] != 1002 or dimension[i + 1][1].strip() != "{":
            continue
        j = i + 2
        while j < len(dimension) and dimension[j][0] != 1002:
            if dimension[j][0] == 1070 and j + 1 < len(dimension):
                key = parse_number(dimension[j][1])
                if not math.isnan(key):
                    overrides[int(key)] = dimension[j + 1][1]
                j += 1
            j += 1
        break
    return overrides


def _find_style(drawing: Drawing, name: str | None) -> DxfRecord | None:
    if not name:
        return None
    for style in drawing.table("DIMSTYLE"):
        if record_type(style) == "DIMSTYLE" and trim(group_value(style, 2)) == name:
            return style
    return None


def collect_dimension_styles(drawing: Drawing, dimension: DxfRecord) -> DimensionStyleSet:
    style = _find_style(drawing, trim(group_value(dimension, 3)))
    overrides = collect_dimension_style_overrides(dimension)
    values: dict[str, float] = {}
    for name, (field_name, code, header_code, default) in DIMENSION_VARIABLES.items():
        raw = overrides.get(code)
        if raw is None:
            raw = group_value(style, code)
        if raw is None:
            raw = drawing.header_value(f"${name}", header_code)
        value = parse_number(raw)
        values[field_name] = default if math.isnan(value) else value
    if not values["scale"]:
        values["scale"] = 1
    return DimensionStyleSet(**values)


def _tolerance(value: float) -> str:
    if value > 0:
        return f"+{format_number(value)}"
    if value < 0:
        return format_number(value)
    return " 0"


def format_dimension_value(
    measurement: float,
    dimension: DxfRecord,
    styles: DimensionStyleSet,
    *,
    angular: bool = False,
) -> str:
    saved = group_number(dimension, 42, -1)
    if saved != -1:
        value = math.degrees(saved) if angular else saved
    else:
        value = measurement if angular else measurement * styles.linear_factor
    text = format_number(round_to(value, int(styles.decimals)))
    if angular:
        text += "°"
    if styles.tolerance:
        p = styles.tolerance_plus
        n = styles.tolerance_minus
        if p or n:
            if p == n:
                text = f"{text}  ±{format_number(p)}"
            else:
                text = f"{text}  {{\\S{_tolerance(p)}^{_tolerance(-n)};}}"
    template = group_value(dimension, 1)
    if template and "<>" in template:
        return template.replace("<>", text, 1)
    return template or text


@dataclass
class DimensionGeometry:
    text: str
    text_position: Point
    baseline: str = "text-after-edge"
    anchor: str = "middle"
    angle: float = 0.0
    paths: list[str] = field(default_factory=list)
    arrows: list[list[Point]] = field(default_factory=list)
    xs: list[float] = field(default_factory=list)
    ys: list[float] = field(default_factory=list)

    def include(self, *points: Point) -> None:
        for x, y in points:
            self.xs.append(x)
            self.ys.append(y)


DimensionOutcome = Union[DimensionGeometry, Unsupported]


def _upright(angle: float) -> float:
    return ((angle + 90) % 180) - 90


def _js_round(value: float) -> float:
    return float(math.floor(value + 0.5))


def _arc_point(apex: Point, radius: float, direction: Point) -> Point:
    return apex[0] + radius * direction[0], apex[1] + radius * direction[1]


def _d(*points: Point) -> str:
    d = ""
    for x, y in points:
        d += f"{'L' if d else 'M'}{format_number(x)} {format_number(y)}"
    return d


class _DimensionBuilder:
    def __init__(
        self,
        dimension: DxfRecord,
        styles: DimensionStyleSet,
        context: StyleContext,
        encoding: str | None,
    ) -> None:
        self.dimension = dimension
        self.styles = styles
        self.context = context
        self.encoding = encoding

    def point(self, x_code: int) -> Point:
        return (
            self.context.coordinate(self.dimension, x_code),
            -self.context.coordinate(self.dimension, x_code + 10),
        )

    def rounded(self, x: float, y: float) -> Point:
        return self.context.round_coordinate(x), self.context.round_coordinate(y)

    def text_width(self, text: str) -> float:
        return len(plain_text(parse_mtext_content(text, self.encoding))) * self.styles.scaled_text_height

    def arrow(self, tip: Point, back: Point | None) -> list[Point] | None:
        if back is None:
            return None
        return [self.rounded(x, y) for x, y in arrowhead(tip, back, self.styles.scaled_arrow_size)]

    def geometry(self, measurement: float, text_position: Point, *, angular: bool = False) -> DimensionGeometry:
        text = format_dimension_value(measurement, self.dimension, self.styles, angular=angular)
        return DimensionGeometry(text=text, text_position=text_position)

    def text_position(self, fallback: Point) -> Point:
        tx, ty = self.point(11)
        if math.isnan(tx) or math.isnan(ty):
            return self.rounded(*fallback)
        return tx, ty

    def linear(self, aligned: bool) -> DimensionOutcome:
        p0 = self.point(10)
        p3 = self.point(13)
        p4 = self.point(14)
        if aligned:
            direction = unit(p4[0] - p3[0], p4[1] - p3[1])
            if direction is None:
                return Unsupported("Aligned dimension without extent cannot be rendered.")
            angle = _upright(round_to(math.degrees(math.atan2(direction[1], direction[0])), 6))
        else:
            angle = _js_round(-group_number(self.dimension, 50, 0))
            direction = (math.cos(math.radians(angle)), math.sin(math.radians(angle)))

        if not aligned and angle % 180 == 0:
            f3 = (p3[0], p0[1])
            f4 = (p4[0], p0[1])
            measurement = abs(p3[0] - p4[0])
            angle = 0.0
        elif not aligned and angle % 90 == 0:
            f3 = (p0[0], p3[1])
            f4 = (p0[0], p4[1])
            measurement = abs(p3[1] - p4[1])
            angle = _upright(angle)
        else:
            ux, uy = direction
            t3 = (p3[0] - p0[0]) * ux + (p3[1] - p0[1]) * uy
            t4 = (p4[0] - p0[0]) * ux + (p4[1] - p0[1]) * uy
            f3 = self.rounded(p0[0] + t3 * ux, p0[1] + t3 * uy)
            f4 = self.rounded(p0[0] + t4 * ux, p0[1] + t4 * uy)
            measurement = abs(t4 - t3)
            angle = _upright(angle)

        midpoint = ((f3[0] + f4[0]) / 2, (f3[1] + f4[1]) / 2)
        geometry = self.geometry(measurement, self.text_position(midpoint))
        geometry.angle = angle
        geometry.paths.append(_d(p3, f3, f4, p4))
        geometry.include(geometry.text_position, p3, p4, f3, f4)

        span = math.hypot(f4[0] - f3[0], f4[1] - f3[1])
        along = unit(f4[0] - f3[0], f4[1] - f3[1])
        if along is None:
            return geometry
        size = self.styles.scaled_arrow_size
        inside = span >= self.text_width(geometry.text) + 4 * size
        ax, ay = along
        if inside:
            arrows = [self.arrow(f3, (ax, ay)), self.arrow(f4, (-ax, -ay))]
        else:
            arrows = [self.arrow(f3, (-ax, -ay)), self.arrow(f4, (ax, ay))]
            reach = _DIMENSION_LINE_EXTENSION * size
            e3 = self.rounded(f3[0] - ax * reach, f3[1] - ay * reach)
            e4 = self.rounded(f4[0] + ax * reach, f4[1] + ay * reach)
            geometry.paths.append(_d(e3, f3) + _d(f4, e4))
            geometry.include(e3, e4)
        for arrow in arrows:
            if arrow is not None:
                geometry.arrows.append(arrow)
                geometry.include(*arrow)
        return geometry

    def angular(self) -> DimensionOutcome:
        p13 = self.point(13)
        p14 = self.point(14)
        p15 = self.point(15)
        p10 = self.point(10)
        p16 = self.point(16)
        apex = intersect_lines(p13, p14, p15, p10)
        d1 = unit(p14[0] - p13[0], p14[1] - p13[1])
        d2 = unit(p10[0] - p15[0], p10[1] - p15[1])
        if apex is None or d1 is None or d2 is None:
            return Unsupported("Angular dimension with parallel lines cannot be rendered.")
        vx, vy = p16[0] - apex[0], p16[1] - apex[1]
        radius = math.hypot(vx, vy)
        solution = solve_2x2(d1[0], d2[0], d1[1], d2[1], vx, vy)
        if solution is None or not radius:
            return Unsupported("Angular dimension arc cannot be located.")
        a, b = solution
        r1 = (d1[0], d1[1]) if a >= 0 else (-d1[0], -d1[1])
        r2 = (d2[0], d2[1]) if b >= 0 else (-d2[0], -d2[1])
        cos_angle = max(-1.0, min(1.0, r1[0] * r2[0] + r1[1] * r2[1]))
        measurement = math.degrees(math.acos(cos_angle))
        cross = r1[0] * r2[1] - r1[1] * r2[0]
        sweep = 1 if cross > 0 else 0

        start = self.rounded(apex[0] + radius * r1[0], apex[1] + radius * r1[1])
        end = self.rounded(apex[0] + radius * r2[0], apex[1] + radius * r2[1])
        h = self.styles.scaled_text_height
        middle = unit(r1[0] + r2[0], r1[1] + r2[1]) or (-r1[1], r1[0])
        label = (apex[0] + (radius + h) * middle[0], apex[1] + (radius + h) * middle[1])

        geometry = self.geometry(measurement, self.text_position(label), angular=True)
        geometry.baseline = "central"
        r = format_number(self.context.round_coordinate(radius))
        geometry.paths.append(
            f"{_d(start)}A{r} {r} 0 0 {sweep} {format_number(end[0])} {format_number(end[1])}"
        )
        geometry.include(geometry.text_position, start, end, self.rounded(*_arc_point(apex, radius, middle)))

        for ray, points, arc_end in ((r1, (p13, p14), start), (r2, (p15, p10), end)):
            reach = [(p[0] - apex[0]) * ray[0] + (p[1] - apex[1]) * ray[1] for p in points]
            farthest = points[0] if reach[0] >= reach[1] else points[1]
            if max(reach) < radius:
                geometry.paths.append(_d(farthest, arc_end))
                geometry.include(farthest)

        direction = 1 if sweep else -1
        theta1 = math.atan2(r1[1], r1[0])
        theta2 = math.atan2(r2[1], r2[0])
        for arrow in (
            self.arrow(start, (direction * -math.sin(theta1), direction * math.cos(theta1))),
            self.arrow(end, (direction * math.sin(theta2), -direction * math.cos(theta2))),
        ):
            if arrow is not None:
                geometry.arrows.append(arrow)
                geometry.include(*arrow)
        return geometry

    def radial(self, diameter: bool) -> DimensionOutcome:
        p10 = self.point(10)
        p15 = self.point(15)
        measurement = math.hypot(p10[0] - p15[0], p10[1] - p15[1])
        text_position = self.text_position(((p10[0] + p15[0]) / 2, (p10[1] + p15[1]) / 2))
        geometry = self.geometry(measurement, text_position)
        geometry.include(text_position, p10, p15)
        if diameter:
            geometry.paths.append(_d(p15, p10))
            toward = unit(p10[0] - p15[0], p10[1] - p15[1])
            arrows = [self.arrow(p15, toward)]
            if toward is not None:
                arrows.append(self.arrow(p10, (-toward[0], -toward[1])))
        else:
            target = text_position if text_position != p15 else p10
            geometry.paths.append(_d(p15, target))
            arrows = [self.arrow(p15, unit(target[0] - p15[0], target[1] - p15[1]))]
        for arrow in arrows:
            if arrow is not None:
                geometry.arrows.append(arrow)
                geometry.include(*arrow)
        return geometry

    def ordinate(self, x_type: bool) -> DimensionOutcome:
        p0 = self.point(10)
        p3 = self.point(13)
        p4 = self.point(14)
        text_position = self.text_position(p4)
        if x_type:
            measurement = abs(p0[0] - p3[0])
            corner = (p3[0], p4[1])
        else:
            measurement = abs(p0[1] - p3[1])
            corner = (p4[0], p3[1])
        geometry = self.geometry(measurement, text_position)
        geometry.paths.append(_d(p3, corner, p4, text_position))
        geometry.baseline = "central"
        geometry.angle = -90.0 if x_type else 0.0
        geometry.include(text_position, p3, p4)
        return geometry


def compute_dimension_geometry(
    dimension: DxfRecord,
    styles: DimensionStyleSet,
    context: StyleContext,
    encoding: str | None = None,
) -> DimensionOutcome:
    builder = _DimensionBuilder(dimension, styles, context, encoding)
    dimension_type = int(group_number(dimension, 70, 0))
    kind = dimension_type & 7
    if kind in (0, 1):
        return builder.linear(aligned=kind == 1)
    if kind == 2:
        return builder.angular()
    if kind == 5:
        return Unsupported("Angular 3-point dimension cannot be rendered yet.")
    if kind in (3, 4):
        return builder.radial(diameter=kind == 3)
    if kind == 6:
        return builder.ordinate(x_type=bool(dimension_type & 64))
    return Unsupported("Unknown dimension type.")
