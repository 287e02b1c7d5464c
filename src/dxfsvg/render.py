from __future__ import annotations

import dataclasses
import itertools
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Sequence

from .bbox import BoundingBox
from .colors import resolve_color_index as default_resolve_color_index
from .colors import resolve_line_weight as default_resolve_line_weight
from .context import CURRENT_COLOR, StyleContext
from .dimension import DimensionGeometry, collect_dimension_styles, compute_dimension_geometry
from .document import Drawing, DxfRecord, group_value, group_values, record_type
from .entity import (
    EntityKind,
    Failed,
    Outcome,
    Rendered,
    Unsupported,
    entity_handle,
    is_attachment,
    is_seqend,
)
from .geometry import Point, arc_extents, arrowhead, bulge_path, polygon_path, unit
from .hatch import collect_hatch_paths, hatch_fill, hatch_path_data
from .markup import AttributeValue, element, escape
from .mtext import LINE_HEIGHT, FontResolver, attachment_point, mtext_angle, mtext_contents
from .text import TextRun, parse_mtext_content, parse_text_content, plain_text
from .util import (
    SMALL_NUMBER,
    checked_number,
    format_number,
    group_int,
    group_number,
    group_trim,
    nearly_equal,
    points_attribute,
    rotate,
    scale,
    transforms,
    translate,
)

logger = logging.getLogger(__name__)

Attributes = Mapping[str, AttributeValue]
Warn = Callable[..., None]

_TEXT_BASELINES = (None, "text-after-edge", "central", "text-before-edge")
_TEXT_ANCHORS = (None, "middle", "end", None, "middle")
_TABLE_BLOCK_CELL = "2"


def _log_warning(message: str, *context: Any) -> None:
    logger.debug("%s", message)


@dataclass(frozen=True)
class RenderOptions:
    warn: Warn = _log_warning
    resolve_color_index: Callable[[int], str] = default_resolve_color_index
    resolve_line_weight: Callable[[float], float] = default_resolve_line_weight
    resolve_font: FontResolver | None = None
    add_attributes: Callable[[DxfRecord], Attributes | None] | None = None
    encoding: str | None = None


def _normalize(vector: tuple[float, float, float]) -> tuple[float, float, float]:
    length = math.hypot(*vector)
    return vector[0] / length, vector[1] / length, vector[2] / length


def _cross(
    a: tuple[float, float, float], b: tuple[float, float, float]
) -> tuple[float, float, float]:
    return a[1] * b[2] - a[2] * b[1], a[2] * b[0] - a[0] * b[2], a[0] * b[1] - a[1] * b[0]


def extrusion_style(entity: DxfRecord) -> str | None:
    x = -group_number(entity, 210, 0)
    y = group_number(entity, 220, 0)
    z = group_number(entity, 230, 1)
    if abs(x) < SMALL_NUMBER and abs(y) < SMALL_NUMBER:
        return "transform:rotateY(180deg)" if z < 0 else None
    az = _normalize((x, y, z))
    ax = _normalize(_cross((0, 0, 1), az))
    ay = _normalize(_cross(az, ax))
    values = [*ax, 0, *ay, 0, 0, 0, 0, 0, 0, 0, 0, 1]
    return f"transform:matrix3d({','.join(format_number(value) for value in values)})"


def _pick(values: Sequence[str | None], index: str | None) -> str | None:
    if not index or not index.isdigit():
        return None
    i = int(index)
    return values[i] if i < len(values) else None


def _text_decoration(run: TextRun) -> str:
    decorations = []
    if run.k:
        decorations.append("line-through")
    if run.o:
        decorations.append("overline")
    if run.u:
        decorations.append("underline")
    return " ".join(decorations)


def _text_extent(
    x: float,
    y: float,
    width: float,
    height: float,
    anchor: str | None,
    baseline: str | None,
) -> tuple[list[float], list[float]]:
    if anchor == "middle":
        xs = [x - width / 2, x + width / 2]
    elif anchor == "end":
        xs = [x - width, x]
    else:
        xs = [x, x + width]
    if baseline == "central":
        ys = [y - height / 2, y + height / 2]
    elif baseline == "text-before-edge":
        ys = [y, y + height]
    else:
        ys = [y - height, y]
    return xs, ys


def _rotate_point(point: Point, angle: float, origin: Point) -> Point:
    if not angle:
        return point
    rad = math.radians(angle)
    dx, dy = point[0] - origin[0], point[1] - origin[1]
    return (
        origin[0] + dx * math.cos(rad) - dy * math.sin(rad),
        origin[1] + dx * math.sin(rad) + dy * math.cos(rad),
    )


def _lwpolyline_vertices(entity: DxfRecord) -> tuple[list[str], list[str], list[float]]:
    xs: list[str] = []
    ys: list[str] = []
    bulges: list[float] = []
    for code, value in entity:
        if code == 10:
            xs.append(value)
            bulges.append(0.0)
        elif code == 20:
            ys.append(value)
        elif code == 42 and bulges:
            bulges[-1] = checked_number(value, code, 0)
    return xs, ys, bulges


class EntityRenderer:
    def __init__(self, drawing: Drawing, options: RenderOptions | None = None) -> None:
        self.drawing = drawing
        self.options = options or RenderOptions()
        self.context = StyleContext.from_drawing(
            drawing, self.options.resolve_color_index, self.options.resolve_line_weight
        )
        self._block_path: list[str] = []
        self._fill_ids = itertools.count(1)
        self._renderers: dict[EntityKind, Callable[[DxfRecord, Sequence[DxfRecord]], Outcome]] = {
            EntityKind.POINT: lambda entity, attachments: None,
            EntityKind.LINE: self._line,
            EntityKind.POLYLINE: self._polyline,
            EntityKind.LWPOLYLINE: self._lwpolyline,
            EntityKind.CIRCLE: self._circle,
            EntityKind.ARC: self._arc,
            EntityKind.ELLIPSE: self._ellipse,
            EntityKind.LEADER: self._leader,
            EntityKind.HATCH: self._hatch,
            EntityKind.SOLID: self._solid,
            EntityKind.TEXT: self._text,
            EntityKind.ATTRIB: self._attrib,
            EntityKind.ATTDEF: lambda entity, attachments: None,
            EntityKind.MTEXT: self._mtext,
            EntityKind.DIMENSION: self._dimension,
            EntityKind.ACAD_TABLE: self._table,
            EntityKind.INSERT: self._insert,
        }

    def warn(self, message: str, *context: Any) -> None:
        self.options.warn(message, *context)

    def outcomes(self, entities: Sequence[DxfRecord]) -> Iterator[tuple[DxfRecord, Outcome]]:
        for entity, attachments in iter_entities(entities):
            tag = record_type(entity)
            renderer = self._renderers.get(EntityKind.from_tag(tag))
            if renderer is None:
                yield entity, Unsupported(f"Unknown entity type: {tag}")
                continue
            try:
                outcome = renderer(entity, attachments)
            except Exception as error:
                outcome = Failed(error)
            yield entity, outcome

    def accept(self, entity: DxfRecord, outcome: Outcome, box: BoundingBox) -> str:
        if isinstance(outcome, Rendered):
            box.extend(outcome.xs, outcome.ys)
            return outcome.markup
        if isinstance(outcome, Unsupported):
            self.warn(outcome.message, entity, *outcome.details)
        elif isinstance(outcome, Failed):
            self.warn(f"Error occurred: {outcome.error}", entity)
        return ""

    def render_entities(self, entities: Sequence[DxfRecord]) -> tuple[str, BoundingBox]:
        box = BoundingBox()
        markup = "".join(self.accept(entity, outcome, box) for entity, outcome in self.outcomes(entities))
        return markup, box

    def _added(self, entity: DxfRecord) -> dict[str, AttributeValue]:
        if self.options.add_attributes is None:
            return {}
        return dict(self.options.add_attributes(entity) or {})

    def _line_attributes(self, entity: DxfRecord) -> dict[str, AttributeValue]:
        return {
            "fill": "none",
            "stroke": self.context.color(entity),
            "stroke-width": self.context.stroke_width(entity),
            "stroke-dasharray": self.context.stroke_dasharray(entity),
            "style": extrusion_style(entity),
            **self._added(entity),
        }

    def _coordinate(self, entity: DxfRecord, code: int) -> float:
        return self.context.coordinate(entity, code)

    def _line(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        x1 = self._coordinate(entity, 10)
        x2 = self._coordinate(entity, 11)
        y1 = -self._coordinate(entity, 20)
        y2 = -self._coordinate(entity, 21)
        markup = element("line", {"x1": x1, "y1": y1, "x2": x2, "y2": y2, **self._line_attributes(entity)})
        return Rendered(markup, [x1, x2], [y1, y2])

    def _points(
        self,
        entity: DxfRecord,
        xs: list[float],
        ys: list[float],
        bulges: list[float],
        closed: bool,
    ) -> Outcome:
        if any(bulge and not math.isnan(bulge) for bulge in bulges):
            d, path_xs, path_ys = bulge_path(list(zip(xs, ys)), bulges, closed, self.context.round_coordinate)
            return Rendered(element("path", {"d": d, **self._line_attributes(entity)}), path_xs, path_ys)
        tag = "polygon" if closed else "polyline"
        markup = element(tag, {"points": points_attribute(xs, ys), **self._line_attributes(entity)})
        return Rendered(markup, xs, ys)

    def _polyline(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        vertices = [vertex for vertex in attachments if record_type(vertex) == "VERTEX"]
        xs = [self._coordinate(vertex, 10) for vertex in vertices]
        ys = [-self._coordinate(vertex, 20) for vertex in vertices]
        bulges = [group_number(vertex, 42, 0) for vertex in vertices]
        return self._points(entity, xs, ys, bulges, bool(group_int(entity, 70) & 1))

    def _lwpolyline(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        raw_xs, raw_ys, bulges = _lwpolyline_vertices(entity)
        round_coordinate = self.context.round_coordinate
        xs = [round_coordinate(checked_number(x, 10)) for x in raw_xs]
        ys = [-round_coordinate(checked_number(y, 20)) for y in raw_ys]
        return self._points(entity, xs, ys, bulges, bool(group_int(entity, 70) & 1))

    def _circle(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        cx = self._coordinate(entity, 10)
        cy = -self._coordinate(entity, 20)
        r = self._coordinate(entity, 40)
        markup = element("circle", {"cx": cx, "cy": cy, "r": r, **self._line_attributes(entity)})
        return Rendered(markup, [cx - r, cx + r], [cy - r, cy + r])

    def _arc(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        round_coordinate = self.context.round_coordinate
        cx = self._coordinate(entity, 10)
        cy = self._coordinate(entity, 20)
        r = self._coordinate(entity, 40)
        start = group_number(entity, 50, 0)
        sweep = (group_number(entity, 51, 0) - start) % 360 or 360
        rad1 = math.radians(start)
        rad2 = math.radians(start + sweep)
        x1 = round_coordinate(cx + r * math.cos(rad1))
        y1 = -round_coordinate(cy + r * math.sin(rad1))
        x2 = round_coordinate(cx + r * math.cos(rad2))
        y2 = -round_coordinate(cy + r * math.sin(rad2))
        radius = format_number(r)
        if sweep == 360:
            xm = round_coordinate(cx - r * math.cos(rad1))
            ym = -round_coordinate(cy - r * math.sin(rad1))
            d = (
                f"M{format_number(x1)} {format_number(y1)}"
                f"A{radius} {radius} 0 0 0 {format_number(xm)} {format_number(ym)}"
                f"A{radius} {radius} 0 0 0 {format_number(x2)} {format_number(y2)}"
            )
        else:
            large = "1" if sweep > 180 else "0"
            d = (
                f"M{format_number(x1)} {format_number(y1)}"
                f"A{radius} {radius} 0 {large} 0 {format_number(x2)} {format_number(y2)}"
            )
        arc_xs, arc_ys = arc_extents(cx, cy, r, rad1, math.radians(sweep))
        xs = [round_coordinate(x) for x in arc_xs]
        ys = [-round_coordinate(y) for y in arc_ys]
        return Rendered(element("path", {"d": d, **self._line_attributes(entity)}), xs, ys)

    def _ellipse(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        rad1 = group_number(entity, 41, 0)
        rad2 = group_number(entity, 42, 2 * math.pi)
        if not (nearly_equal(rad1, 0) and nearly_equal(rad2, 2 * math.pi)):
            return Unsupported("Elliptical arc cannot be rendered yet.")
        round_coordinate = self.context.round_coordinate
        cx = self._coordinate(entity, 10)
        cy = -self._coordinate(entity, 20)
        major_x = self._coordinate(entity, 11)
        major_y = self._coordinate(entity, 21)
        major = round_coordinate(math.hypot(major_x, major_y))
        minor = round_coordinate(group_number(entity, 40, 1) * major)
        angle = -math.atan2(major_y, major_x)
        markup = element(
            "ellipse",
            {
                "cx": cx,
                "cy": cy,
                "rx": major,
                "ry": minor,
                "transform": rotate(math.degrees(angle), cx, cy),
                **self._line_attributes(entity),
            },
        )
        half_w = round_coordinate(math.hypot(major * math.cos(angle), minor * math.sin(angle)))
        half_h = round_coordinate(math.hypot(major * math.sin(angle), minor * math.cos(angle)))
        return Rendered(markup, [cx - half_w, cx + half_w], [cy - half_h, cy + half_h])

    def _leader(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        round_coordinate = self.context.round_coordinate
        xs = [round_coordinate(checked_number(x, 10)) for x in group_values(entity, 10)]
        ys = [-round_coordinate(checked_number(y, 20)) for y in group_values(entity, 20)]
        attributes = self._line_attributes(entity)
        attributes.pop("style")
        markup = element("polyline", {"points": points_attribute(xs, ys), **attributes})
        if group_int(entity, 71) == 1 and len(xs) > 1:
            back = unit(xs[1] - xs[0], ys[1] - ys[0])
            if back is not None:
                size = collect_dimension_styles(self.drawing, entity).scaled_arrow_size
                head = [
                    (round_coordinate(x), round_coordinate(y))
                    for x, y in arrowhead((xs[0], ys[0]), back, size)
                ]
                markup += element("path", {"d": polygon_path(head), "fill": attributes["stroke"]})
                xs = xs + [x for x, _ in head]
                ys = ys + [y for _, y in head]
        return Rendered(markup, xs, ys)

    def _hatch(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        paths = collect_hatch_paths(entity, self.context)
        if not paths:
            return None
        d, xs, ys = hatch_path_data(paths, self.context)
        fill_id = entity_handle(entity) or str(next(self._fill_ids))
        fill, defs = hatch_fill(entity, paths, self.context, fill_id)
        markup = element("path", {"d": d, "fill": fill, "fill-rule": "evenodd", **self._added(entity)})
        return Rendered(defs + markup, xs, ys)

    def _solid(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        x1, x2, x3, x4 = (self._coordinate(entity, code) for code in (10, 11, 12, 13))
        y1, y2, y3, y4 = (-self._coordinate(entity, code) for code in (20, 21, 22, 23))
        if math.isnan(x4) or math.isnan(y4):
            x4, y4 = x3, y3
        points = [(x1, y1), (x2, y2)]
        if (x3, y3) != (x4, y4):
            points.append((x4, y4))
        points.append((x3, y3))
        markup = element("path", {"d": polygon_path(points), "fill": self.context.color(entity), **self._added(entity)})
        return Rendered(markup, [x1, x2, x3, x4], [y1, y2, y3, y4])

    def _text_element(self, entity: DxfRecord, vertical_code: int) -> Outcome:
        round_coordinate = self.context.round_coordinate
        horizontal = group_trim(entity, 72)
        vertical = group_trim(entity, vertical_code)
        x = self._coordinate(entity, 10)
        y = -self._coordinate(entity, 20)
        if (horizontal not in (None, "0") or vertical not in (None, "0")) and group_value(entity, 11) is not None:
            x = self._coordinate(entity, 11)
            y = -self._coordinate(entity, 21)
        h = self._coordinate(entity, 40)
        angle = -group_number(entity, 50, 0)
        runs = parse_text_content(group_value(entity, 1) or "", self.options.encoding)
        baseline = _pick(_TEXT_BASELINES, vertical)
        anchor = _pick(_TEXT_ANCHORS, horizontal)
        if len(runs) == 1:
            children = escape(runs[0].text)
            decoration = _text_decoration(runs[0])
        else:
            children = "".join(
                element("tspan", {"text-decoration": _text_decoration(run)}, escape(run.text)) for run in runs
            )
            decoration = ""
        markup = element(
            "text",
            {
                "x": x,
                "y": y,
                "fill": self.context.color(entity),
                "stroke": "none",
                "font-size": h,
                "dominant-baseline": baseline,
                "text-anchor": anchor,
                "transform": rotate(angle, x, y),
                "text-decoration": decoration,
                **self._added(entity),
            },
            children,
        )
        width = round_coordinate(h * sum(len(run.text) for run in runs))
        xs, ys = _text_extent(x, y, width, h, anchor, baseline)
        return Rendered(markup, xs, ys)

    def _text(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        return self._text_element(entity, 73)

    def _attrib(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        if group_int(entity, 70) & 1:
            return None
        return self._text_element(entity, 74)

    def _mtext(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        x = self._coordinate(entity, 10)
        y = -self._coordinate(entity, 20)
        h = self._coordinate(entity, 40)
        angle = mtext_angle(entity)
        baseline, anchor = attachment_point(group_trim(entity, 71))
        source = "".join(group_values(entity, 3)) + (group_value(entity, 1) or "")
        contents = parse_mtext_content(source, self.options.encoding)
        markup = element(
            "text",
            {
                "x": x,
                "y": y,
                "fill": self.context.color(entity),
                "stroke": "none",
                "font-size": h,
                "dominant-baseline": baseline,
                "text-anchor": anchor,
                "transform": rotate(-angle, x, y),
                **self._added(entity),
            },
            mtext_contents(contents, self.options.resolve_font, line_x=x),
        )
        lines = plain_text(contents).split("\n")
        width = self.context.round_coordinate(h * max(len(line) for line in lines))
        height = self.context.round_coordinate(h * (1 + LINE_HEIGHT * (len(lines) - 1)))
        xs, ys = _text_extent(x, y, width, height, anchor, baseline)
        return Rendered(markup, xs, ys)

    def _dimension_color(self, entity: DxfRecord, index: float) -> str:
        if not index:
            return CURRENT_COLOR
        if index == 256:
            return self.context.color(entity)
        return self.options.resolve_color_index(int(index))

    def _dimension(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        styles = collect_dimension_styles(self.drawing, entity)
        geometry = compute_dimension_geometry(entity, styles, self.context, self.options.encoding)
        if not isinstance(geometry, DimensionGeometry):
            return geometry
        line_color = self._dimension_color(entity, styles.line_color)
        lines = "".join(element("path", {"d": d, "fill": "none", "stroke": line_color}) for d in geometry.paths)
        arrows = "".join(
            element("path", {"d": polygon_path(arrow), "fill": line_color, "stroke": "none"})
            for arrow in geometry.arrows
        )
        tx, ty = geometry.text_position
        text = element(
            "text",
            {
                "x": tx,
                "y": ty,
                "fill": self._dimension_color(entity, styles.text_color),
                "stroke": "none",
                "font-size": styles.scaled_text_height,
                "dominant-baseline": geometry.baseline,
                "text-anchor": geometry.anchor,
                "transform": rotate(geometry.angle, tx, ty),
            },
            mtext_contents(
                parse_mtext_content(geometry.text, self.options.encoding), self.options.resolve_font, line_x=tx
            ),
        )
        markup = element(
            "g",
            {
                "color": self.context.color(entity),
                "stroke-width": self.context.stroke_width(entity),
                "stroke-dasharray": self.context.stroke_dasharray(entity),
                "style": extrusion_style(entity),
                **self._added(entity),
            },
            lines + arrows + text,
        )
        return Rendered(markup, geometry.xs, geometry.ys)

    def _table(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        first_cell = next((i for i, (code, _) in enumerate(entity) if code == 171), len(entity))
        table_header = entity[:first_cell]
        cells = _split_cells(entity, first_cell)
        ys = list(itertools.accumulate((checked_number(v, 141, 0) for v in group_values(entity, 141)), initial=0.0))
        xs = list(itertools.accumulate((checked_number(v, 142, 0) for v in group_values(entity, 142)), initial=0.0))
        line_color = self.context.color(entity)
        table_text_color = group_number(table_header, 64)
        text_color = line_color if math.isnan(table_text_color) else self.options.resolve_color_index(int(table_text_color))

        s = "".join(element("line", {"stroke": line_color, "x1": 0, "y1": y, "x2": xs[-1], "y2": y}) for y in ys)
        xi = yi = 0
        for cell in cells:
            x = xs[xi] if xi < len(xs) else math.nan
            y = ys[yi] if yi < len(ys) else math.nan
            if not group_int(cell, 173):
                next_y = ys[yi + 1] if yi + 1 < len(ys) else math.nan
                s += element("line", {"x1": x, "y1": y, "x2": x, "y2": next_y, "stroke": line_color})
            if group_trim(cell, 171) == _TABLE_BLOCK_CELL:
                self.warn('Table cell type "block" cannot be rendered yet.', entity, cell)
            else:
                color = group_number(cell, 64)
                s += element(
                    "text",
                    {"x": x, "y": y, "fill": text_color if math.isnan(color) else self.options.resolve_color_index(int(color))},
                    mtext_contents(
                        parse_mtext_content(group_value(cell, 1) or "", self.options.encoding),
                        self.options.resolve_font,
                        line_x=x,
                    ),
                )
            xi += 1
            if xi >= len(xs) - 1:
                xi = 0
                yi += 1
        s += element("line", {"x1": xs[-1], "y1": 0, "x2": xs[-1], "y2": ys[-1], "stroke": line_color})

        tx = self._coordinate(entity, 10)
        ty = -self._coordinate(entity, 20)
        markup = element(
            "g",
            {
                "font-size": group_trim(entity, 140),
                "dominant-baseline": "text-before-edge",
                "transform": translate(tx, ty),
                **self._added(entity),
            },
            s,
        )
        return Rendered(markup, [x + tx for x in xs], [y + ty for y in ys])

    def _insert(self, entity: DxfRecord, attachments: Sequence[DxfRecord]) -> Outcome:
        name = group_trim(entity, 2) or ""
        if name in self._block_path:
            return Unsupported(f"Recursive block reference: {name}")
        block = self.drawing.block(name)
        if block is None:
            return Unsupported(f"Block not found: {name}")

        start = 1 if block and record_type(block[0]) == "BLOCK" else 0
        end = len(block) - 1 if block and record_type(block[-1]) == "ENDBLK" else len(block)
        base_x = base_y = 0.0
        if start:
            base_x = self._coordinate(block[0], 10)
            base_y = -self._coordinate(block[0], 20)
            base_x = 0.0 if math.isnan(base_x) else base_x
            base_y = 0.0 if math.isnan(base_y) else base_y

        self._block_path.append(name)
        try:
            contents, child = self.render_entities(block[start:end])
        finally:
            self._block_path.pop()

        x = self._coordinate(entity, 10)
        y = -self._coordinate(entity, 20)
        angle = -group_number(entity, 50, 0)
        xscale = group_number(entity, 41, 1) or 1
        yscale = group_number(entity, 42, 1) or 1
        columns = max(group_int(entity, 70, 1), 1)
        rows = max(group_int(entity, 71, 1), 1)
        column_spacing = group_number(entity, 44, 0)
        row_spacing = group_number(entity, 45, 0)

        attributes = {"color": self.context.own_color(entity), **self._line_attributes(entity)}
        markup = ""
        xs: list[float] = []
        ys: list[float] = []
        for row in range(rows):
            for column in range(columns):
                offset_x = column * column_spacing
                offset_y = -row * row_spacing
                transform = transforms(
                    rotate(angle, x, y),
                    translate(x, y),
                    translate(offset_x, offset_y),
                    scale(xscale, yscale),
                    translate(-base_x, -base_y),
                )
                markup += element("g", {**attributes, "transform": transform}, contents)
                if child.is_empty:
                    continue
                for cx, cy in child.corners():
                    point = (
                        x + offset_x + (cx - base_x) * xscale,
                        y + offset_y + (cy - base_y) * yscale,
                    )
                    wx, wy = _rotate_point(point, angle, (x, y))
                    xs.append(wx)
                    ys.append(wy)

        attribute_box = BoundingBox()
        for attachment in attachments:
            if record_type(attachment) != "ATTRIB":
                continue
            try:
                outcome = self._attrib(attachment, ())
            except Exception as error:
                outcome = Failed(error)
            markup += self.accept(attachment, outcome, attribute_box)
        if not attribute_box.is_empty:
            xs.extend(x for x, _ in attribute_box.corners())
            ys.extend(y for _, y in attribute_box.corners())
        return Rendered(markup, xs, ys)


def _split_cells(entity: DxfRecord, first_cell: int) -> list[DxfRecord]:
    cells: list[DxfRecord] = []
    index = first_cell
    for i in range(first_cell + 1, len(entity)):
        if entity[i][0] == 171:
            cells.append(entity[index:i])
            index = i
    if index < len(entity):
        cells.append(entity[index:])
    return cells


def iter_entities(entities: Sequence[DxfRecord]) -> Iterator[tuple[DxfRecord, list[DxfRecord]]]:
    i = 0
    while i < len(entities):
        entity = entities[i]
        i += 1
        if not record_type(entity) or is_seqend(entity):
            continue
        attachments: list[DxfRecord] = []
        while i < len(entities) and is_attachment(entities[i]):
            attachments.append(entities[i])
            i += 1
        if attachments and i < len(entities) and is_seqend(entities[i]):
            i += 1
        yield entity, attachments


def create_svg_contents(
    drawing: Drawing | Mapping[str, Any],
    options: RenderOptions | None = None,
    **overrides: Any,
) -> tuple[str, BoundingBox]:
    if not isinstance(drawing, Drawing):
        drawing = Drawing.from_mapping(drawing)
    resolved = options or RenderOptions()
    if overrides:
        resolved = dataclasses.replace(resolved, **overrides)
    renderer = EntityRenderer(drawing, resolved)
    return renderer.render_entities(drawing.entities)
