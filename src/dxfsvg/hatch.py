from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Sequence

from .colors import true_color_hex
from .context import StyleContext
from .document import DxfRecord, group_values
from .geometry import Point, bulge_path
from .markup import element
from .util import format_number, group_int, group_number, group_trim, normalize_dasharray, parse_number, round_to

PATTERN_TILE_SIZE = 256

_ELLIPSE_SEGMENTS_PER_QUARTER = 8
_PATTERN_CODES = {53, 43, 44, 45, 46, 49, 79}


@dataclass
class HatchPath:
    points: list[Point] = field(default_factory=list)
    bulges: list[float] = field(default_factory=list)

    def add(self, x: float, y: float, bulge: float = 0.0) -> None:
        if self.points and self.points[-1] == (x, y):
            self.bulges[-1] = bulge or self.bulges[-1]
            return
        self.points.append((x, y))
        self.bulges.append(bulge)

    def close(self) -> None:
        if len(self.points) > 1 and self.points[0] == self.points[-1]:
            self.points.pop()
            self.bulges.pop()

    @property
    def xs(self) -> list[float]:
        return [x for x, _ in self.points]

    @property
    def ys(self) -> list[float]:
        return [y for _, y in self.points]


@dataclass
class HatchPatternLine:
    angle: float
    base_x: float = 0.0
    base_y: float = 0.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    dashes: list[float] = field(default_factory=list)


def _split(record: DxfRecord, code: int) -> list[DxfRecord]:
    parts: list[list[tuple[int, str]]] = []
    for pair in record:
        if pair[0] == code:
            parts.append([])
        if parts:
            parts[-1].append(pair)
    return parts


def _boundary_section(hatch: DxfRecord) -> DxfRecord:
    start = next((i for i, (code, _) in enumerate(hatch) if code == 91), None)
    if start is None:
        return ()
    end = start + 1
    while end < len(hatch) and hatch[end][0] not in {75, 98}:
        end += 1
    return hatch[start + 1 : end]


def collect_hatch_paths(hatch: DxfRecord, context: StyleContext) -> list[HatchPath]:
    paths: list[HatchPath] = []
    for loop in _split(_boundary_section(hatch), 92):
        path = HatchPath()
        if group_int(loop, 92) & 2:
            _collect_polyline_loop(loop, path, context)
        else:
            for edge in _split(loop, 72):
                _collect_edge(edge, path, context)
        path.close()
        if path.points:
            paths.append(path)
    return paths


def _collect_polyline_loop(loop: DxfRecord, path: HatchPath, context: StyleContext) -> None:
    pending_x: float | None = None
    for code, value in loop:
        if code == 10:
            pending_x = context.round_coordinate(parse_number(value))
        elif code == 20 and pending_x is not None:
            path.add(pending_x, -context.round_coordinate(parse_number(value)))
            pending_x = None
        elif code == 42 and path.bulges:
            path.bulges[-1] = parse_number(value)


def _collect_edge(edge: DxfRecord, path: HatchPath, context: StyleContext) -> None:
    edge_type = group_int(edge, 72)
    if edge_type == 1:
        path.add(context.coordinate(edge, 10), -context.coordinate(edge, 20))
        path.add(context.coordinate(edge, 11), -context.coordinate(edge, 21))
    elif edge_type == 2:
        _collect_arc_edge(edge, path, context)
    elif edge_type == 3:
        _collect_ellipse_edge(edge, path, context)
    elif edge_type == 4:
        xs = group_values(edge, 10)
        ys = group_values(edge, 20)
        for x, y in zip(xs, ys):
            path.add(context.round_coordinate(parse_number(x)), -context.round_coordinate(parse_number(y)))


def _edge_angles(edge: DxfRecord) -> tuple[float, float, bool]:
    start = group_number(edge, 50, 0)
    end = group_number(edge, 51, 360)
    counter_clockwise = group_int(edge, 73, 1) != 0
    if not counter_clockwise:
        # clockwise edges store mirrored angles
        start, end = -start, -end
    return start, end, counter_clockwise


def _collect_arc_edge(edge: DxfRecord, path: HatchPath, context: StyleContext) -> None:
    cx = group_number(edge, 10)
    cy = group_number(edge, 20)
    r = group_number(edge, 40)
    start, end, counter_clockwise = _edge_angles(edge)
    sweep = (end - start) % 360 or 360
    if not counter_clockwise:
        sweep = -((start - end) % 360 or 360)
    rad1 = math.radians(start)
    rad2 = math.radians(start + sweep)
    x1 = context.round_coordinate(cx + r * math.cos(rad1))
    y1 = -context.round_coordinate(cy + r * math.sin(rad1))
    x2 = context.round_coordinate(cx + r * math.cos(rad2))
    y2 = -context.round_coordinate(cy + r * math.sin(rad2))
    if abs(sweep) >= 360:
        xm = context.round_coordinate(cx - r * math.cos(rad1))
        ym = -context.round_coordinate(cy - r * math.sin(rad1))
        half = math.tan(math.radians(sweep / 2) / 4)
        path.add(x1, y1, half)
        path.add(xm, ym, half)
        path.add(x2, y2)
        return
    path.add(x1, y1, math.tan(math.radians(sweep) / 4))
    path.add(x2, y2)


def _collect_ellipse_edge(edge: DxfRecord, path: HatchPath, context: StyleContext) -> None:
    cx = group_number(edge, 10)
    cy = group_number(edge, 20)
    major_x = group_number(edge, 11)
    major_y = group_number(edge, 21)
    ratio = group_number(edge, 40, 1)
    start, end, counter_clockwise = _edge_angles(edge)
    sweep = (end - start) % 360 or 360
    if not counter_clockwise:
        sweep = -((start - end) % 360 or 360)
    rotation = math.atan2(major_y, major_x)
    major = math.hypot(major_x, major_y)
    minor = major * ratio
    segments = max(1, math.ceil(abs(sweep) / 90 * _ELLIPSE_SEGMENTS_PER_QUARTER))
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    for i in range(segments + 1):
        t = math.radians(start + sweep * i / segments)
        ex, ey = major * math.cos(t), minor * math.sin(t)
        path.add(
            context.round_coordinate(cx + ex * cos_r - ey * sin_r),
            -context.round_coordinate(cy + ex * sin_r + ey * cos_r),
        )


def hatch_path_data(paths: Sequence[HatchPath], context: StyleContext) -> tuple[str, list[float], list[float]]:
    d = ""
    xs: list[float] = []
    ys: list[float] = []
    for path in paths:
        path_d, path_xs, path_ys = bulge_path(path.points, path.bulges, True, context.round_coordinate)
        d += path_d
        xs.extend(path_xs)
        ys.extend(path_ys)
    return d, xs, ys


def collect_hatch_pattern_lines(hatch: DxfRecord) -> list[HatchPatternLine]:
    start = next((i for i, (code, _) in enumerate(hatch) if code == 78), None)
    if start is None:
        return []
    lines: list[HatchPatternLine] = []
    current: HatchPatternLine | None = None
    for code, raw_value in hatch[start + 1 :]:
        if code not in _PATTERN_CODES:
            break
        value = round_to(raw_value, 6)
        if code == 53:
            current = HatchPatternLine(angle=value)
            lines.append(current)
        elif current is None or code == 79:
            continue
        elif code == 43:
            current.base_x = value
        elif code == 44:
            current.base_y = value
        elif code == 45:
            current.offset_x = value
        elif code == 46:
            current.offset_y = value
        elif code == 49:
            current.dashes.append(value)
    return lines


def _stops(*stops: tuple[str, str | None]) -> str:
    return "".join(element("stop", {"stop-color": color, "offset": offset}) for color, offset in stops)


def _gradient_rotation(hatch: DxfRecord) -> str:
    angle = round_to(math.degrees(group_number(hatch, 460, 0)), 6)
    return f"rotate({format_number(-angle)},.5,.5)" if angle else ""


def _linear(gradient_id: str, colors: tuple[str, str], hatch: DxfRecord, paths: Sequence[HatchPath]) -> str:
    return element(
        "linearGradient",
        {"id": gradient_id, "x2": 1, "y2": 0, "gradientTransform": _gradient_rotation(hatch)},
        _stops((colors[0], None), (colors[1], "1")),
    )


def _cylinder(gradient_id: str, colors: tuple[str, str], hatch: DxfRecord, paths: Sequence[HatchPath]) -> str:
    return element(
        "linearGradient",
        {"id": gradient_id, "x2": 1, "y2": 0, "gradientTransform": _gradient_rotation(hatch)},
        _stops((colors[0], None), (colors[1], ".5"), (colors[0], "1")),
    )


def _spherical(gradient_id: str, colors: tuple[str, str], hatch: DxfRecord, paths: Sequence[HatchPath]) -> str:
    xs = [x for path in paths for x in path.xs]
    ys = [y for path in paths for y in path.ys]
    if not xs:
        xs = ys = [0.0]
    x_min, x_max, y_min, y_max = min(xs), max(xs), min(ys), max(ys)
    return element(
        "radialGradient",
        {
            "id": gradient_id,
            "cx": (x_min + x_max) / 2,
            "cy": (y_min + y_max) / 2,
            "r": max(x_max - x_min, y_max - y_min) / 2,
            "gradientUnits": "userSpaceOnUse",
        },
        _stops((colors[1], None), (colors[0], "1")),
    )


def _hemispherical(gradient_id: str, colors: tuple[str, str], hatch: DxfRecord, paths: Sequence[HatchPath]) -> str:
    return element(
        "radialGradient",
        {"id": gradient_id, "cy": 1, "gradientTransform": "translate(-.75,-1.5) scale(2.5)"},
        _stops((colors[1], None), (colors[0], "1")),
    )


def _curved(gradient_id: str, colors: tuple[str, str], hatch: DxfRecord, paths: Sequence[HatchPath]) -> str:
    return element(
        "radialGradient",
        {"id": gradient_id, "cy": 1, "gradientTransform": "translate(-1,-2) scale(3)"},
        _stops((colors[1], None), (colors[0], "1")),
    )


GradientFactory = Callable[[str, tuple[str, str], DxfRecord, Sequence[HatchPath]], str]


def _inverted(factory: GradientFactory) -> GradientFactory:
    def inverted(gradient_id: str, colors: tuple[str, str], hatch: DxfRecord, paths: Sequence[HatchPath]) -> str:
        return factory(gradient_id, (colors[1], colors[0]), hatch, paths)

    return inverted


GRADIENTS: dict[str, GradientFactory] = {
    "LINEAR": _linear,
    "CYLINDER": _cylinder,
    "INVCYLINDER": _inverted(_cylinder),
    "SPHERICAL": _spherical,
    "INVSPHERICAL": _inverted(_spherical),
    "HEMISPHERICAL": _hemispherical,
    "INVHEMISPHERICAL": _inverted(_hemispherical),
    "CURVED": _curved,
    "INVCURVED": _inverted(_curved),
}


def _gradient_colors(hatch: DxfRecord, context: StyleContext) -> tuple[str, str]:
    indices = group_values(hatch, 63)
    true_colors = group_values(hatch, 421)
    colors: list[str] = []
    for i, default in enumerate((5, 2)):
        if i < len(true_colors) and not math.isnan(parse_number(true_colors[i])):
            colors.append(true_color_hex(int(parse_number(true_colors[i]))))
            continue
        index = parse_number(indices[i]) if i < len(indices) else math.nan
        colors.append(context.resolve_color_index(int(index) if not math.isnan(index) and index else default))
    return colors[0], colors[1]


def _background_color(hatch: DxfRecord, context: StyleContext) -> str | None:
    for i, (code, value) in enumerate(hatch):
        if code == 1001 and value.strip() == "HATCHBACKGROUNDCOLOR" and i + 1 < len(hatch):
            index = parse_number(hatch[i + 1][1])
            if math.isnan(index):
                return None
            index = int(index) & 255
            return context.resolve_color_index(index) if index else None
    return None


def _pattern_tile(pattern_id: str, line: HatchPatternLine, color: str) -> str:
    dashes = normalize_dasharray(line.dashes)
    height = round_to(math.hypot(line.offset_x, line.offset_y), 6)
    width = round_to(sum(dashes), 6) or PATTERN_TILE_SIZE
    transform = " ".join(
        part
        for part in (
            f"translate({format_number(line.base_x)},{format_number(-line.base_y)})"
            if line.base_x or line.base_y
            else "",
            f"rotate({format_number(-line.angle)})" if line.angle else "",
        )
        if part
    )
    return element(
        "pattern",
        {
            "id": pattern_id,
            "width": width,
            "height": height,
            "patternUnits": "userSpaceOnUse",
            "patternTransform": transform,
        },
        element(
            "line",
            {
                "x2": width,
                "stroke-width": 1,
                "stroke": color,
                "stroke-dasharray": " ".join(format_number(value) for value in dashes),
            },
        ),
    )


def hatch_fill(
    hatch: DxfRecord,
    paths: Sequence[HatchPath],
    context: StyleContext,
    fill_id: str,
) -> tuple[str, str]:
    fill_color = context.color(hatch)
    if group_trim(hatch, 450) == "1":
        gradient_id = f"hatch-gradient-{fill_id}"
        factory = GRADIENTS.get(group_trim(hatch, 470) or "")
        if factory is None:
            return fill_color, ""
        defs = factory(gradient_id, _gradient_colors(hatch, context), hatch, paths)
        return f"url(#{gradient_id})", element("defs", None, defs)

    if group_trim(hatch, 70) == "1":
        return fill_color, ""

    lines = collect_hatch_pattern_lines(hatch)
    if not lines:
        return fill_color, ""
    pattern_id = f"hatch-pattern-{fill_id}"
    background = _background_color(hatch, context)
    tiles = "".join(_pattern_tile(f"{pattern_id}-{i}", line, fill_color) for i, line in enumerate(lines))
    layers = element(
        "rect", {"fill": background, "width": PATTERN_TILE_SIZE, "height": PATTERN_TILE_SIZE}
    ) if background else ""
    layers += "".join(
        element("rect", {"fill": f"url(#{pattern_id}-{i})", "width": PATTERN_TILE_SIZE, "height": PATTERN_TILE_SIZE})
        for i in range(len(lines))
    )
    master = element(
        "pattern",
        {"id": pattern_id, "width": PATTERN_TILE_SIZE, "height": PATTERN_TILE_SIZE, "patternUnits": "userSpaceOnUse"},
        layers,
    )
    return f"url(#{pattern_id})", element("defs", None, tiles + master)
