from __future__ import annotations

import math
from typing import Callable, Sequence

from .util import format_number

Point = tuple[float, float]

ARROW_HALF_ANGLE = math.radians(15)
_HALF_PI = math.pi / 2
_EPSILON = 1e-12


def solve_2x2(a: float, b: float, c: float, d: float, e: float, f: float) -> Point | None:
    # a*t + b*s = e, c*t + d*s = f
    det = a * d - b * c
    if abs(det) < _EPSILON:
        return None
    return (e * d - b * f) / det, (a * f - e * c) / det


def intersect_lines(p1: Point, p2: Point, p3: Point, p4: Point) -> Point | None:
    dx1, dy1 = p2[0] - p1[0], p2[1] - p1[1]
    dx2, dy2 = p4[0] - p3[0], p4[1] - p3[1]
    solution = solve_2x2(dx1, -dx2, dy1, -dy2, p3[0] - p1[0], p3[1] - p1[1])
    if solution is None:
        return None
    t = solution[0]
    return p1[0] + t * dx1, p1[1] + t * dy1


def unit(dx: float, dy: float) -> Point | None:
    length = math.hypot(dx, dy)
    if length < _EPSILON or not math.isfinite(length):
        return None
    return dx / length, dy / length


def arc_extents(cx: float, cy: float, r: float, start: float, sweep: float) -> tuple[list[float], list[float]]:
    end = start + sweep
    xs = [cx + r * math.cos(start), cx + r * math.cos(end)]
    ys = [cy + r * math.sin(start), cy + r * math.sin(end)]
    lo, hi = min(start, end), max(start, end)
    for k in range(math.ceil(lo / _HALF_PI), math.floor(hi / _HALF_PI) + 1):
        angle = k * _HALF_PI
        xs.append(cx + r * math.cos(angle))
        ys.append(cy + r * math.sin(angle))
    return xs, ys


def bulge_center(p1: Point, p2: Point, bulge: float) -> Point:
    # screen coordinates: a drawing-space bulge turns the other way after the Y flip
    b = -bulge
    dx, dy = p2[0] - p1[0], p2[1] - p1[1]
    chord = math.hypot(dx, dy)
    offset = chord * (1 - b * b) / (4 * b)
    mx, my = (p1[0] + p2[0]) / 2, (p1[1] + p2[1]) / 2
    return mx - dy / chord * offset, my + dx / chord * offset


def bulge_path(
    points: Sequence[Point],
    bulges: Sequence[float],
    closed: bool,
    round_coordinate: Callable[[float], float],
) -> tuple[str, list[float], list[float]]:
    if not points:
        return "", [], []
    xs = [x for x, _ in points]
    ys = [y for _, y in points]
    d = f"M{format_number(xs[0])} {format_number(ys[0])}"
    count = len(points)
    segments = count if closed else count - 1
    for i in range(segments):
        p1 = points[i]
        p2 = points[(i + 1) % count]
        bulge = bulges[i] if i < len(bulges) else 0.0
        chord = math.hypot(p2[0] - p1[0], p2[1] - p1[1])
        if not bulge or not chord or math.isnan(bulge):
            if i == count - 1:
                break
            d += f"L{format_number(p2[0])} {format_number(p2[1])}"
            continue
        r = round_coordinate(chord * abs(bulge + 1 / bulge) / 4)
        large = "1" if abs(bulge) > 1 else "0"
        sweep = "0" if bulge > 0 else "1"
        d += (
            f"A{format_number(r)} {format_number(r)} 0 {large} {sweep} "
            f"{format_number(p2[0])} {format_number(p2[1])}"
        )
        cx, cy = bulge_center(p1, p2, bulge)
        start = math.atan2(p1[1] - cy, p1[0] - cx)
        arc_xs, arc_ys = arc_extents(cx, cy, math.hypot(p1[0] - cx, p1[1] - cy), start, 4 * math.atan(-bulge))
        xs.extend(round_coordinate(x) for x in arc_xs)
        ys.extend(round_coordinate(y) for y in arc_ys)
    if closed:
        d += "Z"
    return d, xs, ys


def arrowhead(tip: Point, back: Point, size: float) -> list[Point]:
    cos_a, sin_a = math.cos(ARROW_HALF_ANGLE), math.sin(ARROW_HALF_ANGLE)
    bx, by = back
    return [
        tip,
        (tip[0] + size * (bx * cos_a - by * sin_a), tip[1] + size * (bx * sin_a + by * cos_a)),
        (tip[0] + size * (bx * cos_a + by * sin_a), tip[1] + size * (-bx * sin_a + by * cos_a)),
    ]


def polygon_path(points: Sequence[Point]) -> str:
    d = ""
    for x, y in points:
        d += f"{'L' if d else 'M'}{format_number(x)} {format_number(y)}"
    return d + "Z"
