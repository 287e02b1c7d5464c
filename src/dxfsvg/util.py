from __future__ import annotations

import math
from typing import Iterable, Sequence

from .document import DxfRecord, group_value

SANITY_BOUND = 1e6
SMALL_NUMBER = 1 / 64


def nearly_equal(a: float, b: float) -> bool:
    return abs(a - b) < SMALL_NUMBER


def _shift(n: float, precision: int) -> float:
    mantissa, _, exponent = repr(float(n)).partition("e")
    return float(f"{mantissa}e{int(exponent or 0) + precision}")


def round_to(n: float | str, precision: int) -> float:
    value = parse_number(n) if isinstance(n, str) else float(n)
    if not math.isfinite(value):
        return value
    # half-up on the decimal representation, not on the binary value
    return _shift(math.floor(_shift(value, precision) + 0.5), -precision)


def parse_number(value: str | None) -> float:
    if value is None:
        return math.nan
    try:
        return float(value.strip())
    except ValueError:
        return math.nan


def trim(value: str | None) -> str | None:
    return value.strip() if value else value


def group_trim(record: DxfRecord | None, code: int) -> str | None:
    return trim(group_value(record, code))


def checked_number(raw: str | None, code: int, default: float | None = None) -> float:
    value = parse_number(raw)
    if math.isnan(value):
        return math.nan if default is None else default
    if abs(value) > SANITY_BOUND:
        raise ValueError(f"group code {code} is invalid ({format_number(value)})")
    rounded = round(value)
    return float(rounded) if abs(rounded - value) < 1e-8 else value


def group_number(record: DxfRecord | None, code: int, default: float | None = None) -> float:
    return checked_number(group_value(record, code), code, default)


def group_int(record: DxfRecord | None, code: int, default: int = 0) -> int:
    value = group_number(record, code)
    return default if math.isnan(value) else int(value)


def format_number(value: float | int) -> str:
    if isinstance(value, bool):
        return str(int(value))
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def rotate(angle: float, x: float = 0.0, y: float = 0.0) -> str:
    if not angle or math.isnan(angle):
        return ""
    if x or y:
        return f"rotate({format_number(angle)} {format_number(x)} {format_number(y)})"
    return f"rotate({format_number(angle)})"


def translate(x: float, y: float) -> str:
    if not x and not y:
        return ""
    return f"translate({format_number(x)} {format_number(y)})"


def scale(sx: float, sy: float) -> str:
    if sx == 1 and sy == 1:
        return ""
    return f"scale({format_number(sx)} {format_number(sy)})"


def transforms(*parts: str) -> str:
    return " ".join(part for part in parts if part)


def normalize_dasharray(lengths: Iterable[float]) -> list[float]:
    values = list(lengths)
    if values and values[0] < 0:
        values.insert(0, 0.0)
    if len(values) % 2 == 1:
        values.append(0.0)
    return [abs(value) for value in values]


def points_attribute(xs: Sequence[float], ys: Sequence[float]) -> str:
    return " ".join(f"{format_number(x)},{format_number(y)}" for x, y in zip(xs, ys))
