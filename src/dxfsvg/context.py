from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping

from .colors import true_color_hex
from .document import Drawing, DxfRecord, group_value, group_values, record_type
from .util import (
    format_number,
    group_number,
    group_trim,
    normalize_dasharray,
    parse_number,
    round_to,
)

DEFAULT_LUPREC = 4
CURRENT_COLOR = "currentColor"


@dataclass(frozen=True)
class LayerStyle:
    color: str
    line_type: str | None
    stroke_width: float | None


def _parse_int(value: str | None) -> int | None:
    number = parse_number(value)
    return None if math.isnan(number) else int(number)


def _true_color(record: DxfRecord) -> str | None:
    value = _parse_int(group_trim(record, 420))
    return None if value is None else true_color_hex(value)


@dataclass(frozen=True)
class StyleContext:
    resolve_color_index: Callable[[int], str]
    resolve_line_weight: Callable[[float], float]
    layers: Mapping[str, LayerStyle] = field(default_factory=dict)
    line_types: Mapping[str, str] = field(default_factory=dict)
    luprec: int = DEFAULT_LUPREC

    @classmethod
    def from_drawing(
        cls,
        drawing: Drawing,
        resolve_color_index: Callable[[int], str],
        resolve_line_weight: Callable[[float], float],
    ) -> "StyleContext":
        layers: dict[str, LayerStyle] = {}
        for layer in drawing.table("LAYER"):
            if record_type(layer) != "LAYER":
                continue
            name = group_trim(layer, 2)
            if not name:
                continue
            color = _true_color(layer)
            if color is None:
                index = _parse_int(group_trim(layer, 62))
                # negative index marks a layer that is switched off
                color = resolve_color_index(abs(index) if index is not None else 7)
            stroke_width = parse_number(group_value(layer, 370))
            layers[name] = LayerStyle(
                color=color,
                line_type=group_trim(layer, 6) or None,
                stroke_width=None if math.isnan(stroke_width) or stroke_width < 0 else stroke_width / 100,
            )

        line_types: dict[str, str] = {}
        for line_type in drawing.table("LTYPE"):
            if record_type(line_type) != "LTYPE":
                continue
            name = group_trim(line_type, 2)
            dashes = normalize_dasharray(round_to(value, 8) for value in group_values(line_type, 49))
            if name and dashes:
                line_types[name] = " ".join(format_number(value) for value in dashes)

        luprec = _parse_int(drawing.header_value("$LUPREC", 70))
        return cls(
            resolve_color_index=resolve_color_index,
            resolve_line_weight=resolve_line_weight,
            layers=MappingProxyType(layers),
            line_types=MappingProxyType(line_types),
            luprec=luprec or DEFAULT_LUPREC,
        )

    def layer(self, entity: DxfRecord) -> LayerStyle | None:
        name = group_trim(entity, 8)
        return self.layers.get(name) if name else None

    def line_type(self, entity: DxfRecord) -> str | None:
        name = group_trim(entity, 6)
        if not name or name.upper() == "BYLAYER":
            layer = self.layer(entity)
            name = layer.line_type if layer else None
        return self.line_types.get(name) if name else None

    def own_color(self, entity: DxfRecord) -> str | None:
        index = group_trim(entity, 62)
        if index == "0":
            return CURRENT_COLOR
        color = _true_color(entity)
        if color is not None:
            return color
        if index and index != "256":
            value = _parse_int(index)
            if value is not None:
                return self.resolve_color_index(value)
        layer = self.layer(entity)
        return layer.color if layer else None

    def color(self, entity: DxfRecord) -> str:
        return self.own_color(entity) or CURRENT_COLOR

    def stroke_width(self, entity: DxfRecord) -> float | None:
        value = group_trim(entity, 370)
        if value == "-3":
            return self.resolve_line_weight(-3)
        if value == "-2":
            layer = self.layer(entity)
            if layer is None or layer.stroke_width is None:
                return self.resolve_line_weight(-3)
            return self.resolve_line_weight(layer.stroke_width)
        if value == "-1" or not value:
            return None
        weight = parse_number(value)
        if math.isnan(weight):
            return None
        return self.resolve_line_weight(weight / 100)

    def stroke_dasharray(self, entity: DxfRecord) -> str | None:
        return self.line_type(entity)

    def round_coordinate(self, n: float) -> float:
        return round_to(n, self.luprec)

    def coordinate(self, record: DxfRecord, code: int) -> float:
        return self.round_coordinate(group_number(record, code))
