from __future__ import annotations

from ezdxf.colors import DXF_DEFAULT_COLORS

from .util import round_to

FALLBACK_COLOR = "#888"
_ACI_FOREGROUND = 7


def resolve_color_index(index: int) -> str:
    if index == _ACI_FOREGROUND:
        return "#000000"
    if 0 < index < 256 and index < len(DXF_DEFAULT_COLORS):
        return f"#{DXF_DEFAULT_COLORS[index]:06x}"
    return FALLBACK_COLOR


def true_color_hex(value: int) -> str:
    return f"#{value & 0xFFFFFF:06x}"


def resolve_line_weight(line_weight: float) -> float:
    if line_weight == -3:
        return 0.5
    return round_to(line_weight * 10, 6)
