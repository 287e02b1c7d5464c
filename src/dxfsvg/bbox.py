from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable

from .util import format_number


@dataclass
class BoundingBox:
    min_x: float = math.inf
    min_y: float = math.inf
    max_x: float = -math.inf
    max_y: float = -math.inf

    def extend(self, xs: Iterable[float], ys: Iterable[float]) -> None:
        for x in xs:
            if math.isfinite(x):
                self.min_x = min(self.min_x, x)
                self.max_x = max(self.max_x, x)
        for y in ys:
            if math.isfinite(y):
                self.min_y = min(self.min_y, y)
                self.max_y = max(self.max_y, y)

    def merge(self, other: "BoundingBox") -> None:
        self.extend((other.min_x, other.max_x), (other.min_y, other.max_y))

    @property
    def is_empty(self) -> bool:
        return not (math.isfinite(self.min_x) and math.isfinite(self.min_y))

    @property
    def x(self) -> float:
        return self.min_x

    @property
    def y(self) -> float:
        return self.min_y

    @property
    def w(self) -> float:
        return self.max_x - self.min_x

    @property
    def h(self) -> float:
        return self.max_y - self.min_y

    def corners(self) -> list[tuple[float, float]]:
        return [
            (self.min_x, self.min_y),
            (self.max_x, self.min_y),
            (self.max_x, self.max_y),
            (self.min_x, self.max_y),
        ]

    def as_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "w": self.w, "h": self.h}

    def view_box(self) -> str:
        if self.is_empty:
            return "0 0 0 0"
        return " ".join(format_number(value) for value in (self.x, self.y, self.w, self.h))
