from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence, Union

from .document import DxfRecord, record_type


class EntityKind(Enum):
    LINE = "LINE"
    ARC = "ARC"
    CIRCLE = "CIRCLE"
    ELLIPSE = "ELLIPSE"
    LWPOLYLINE = "LWPOLYLINE"
    POLYLINE = "POLYLINE"
    LEADER = "LEADER"
    HATCH = "HATCH"
    SOLID = "SOLID"
    TEXT = "TEXT"
    ATTRIB = "ATTRIB"
    ATTDEF = "ATTDEF"
    MTEXT = "MTEXT"
    DIMENSION = "DIMENSION"
    ACAD_TABLE = "ACAD_TABLE"
    INSERT = "INSERT"
    POINT = "POINT"
    UNKNOWN = ""

    @classmethod
    def from_tag(cls, tag: str | None) -> "EntityKind":
        try:
            kind = cls((tag or "").strip().upper())
        except ValueError:
            return cls.UNKNOWN
        return kind


# records trailing POLYLINE / INSERT up to the closing SEQEND
ATTACHMENT_TYPES = {"VERTEX", "ATTRIB"}


def is_attachment(record: DxfRecord | None) -> bool:
    return record_type(record) in ATTACHMENT_TYPES


def is_seqend(record: DxfRecord | None) -> bool:
    return record_type(record) == "SEQEND"


def entity_handle(record: DxfRecord) -> str | None:
    for code, value in record:
        if code == 5:
            return value.strip()
    return None


@dataclass(frozen=True)
class Rendered:
    markup: str
    xs: Sequence[float] = ()
    ys: Sequence[float] = ()


@dataclass(frozen=True)
class Unsupported:
    message: str
    details: tuple[Any, ...] = ()


@dataclass(frozen=True)
class Failed:
    error: Exception


Outcome = Union[Rendered, Unsupported, Failed, None]
