from __future__ import annotations

import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Sequence

from ezdxf.lldxf.tagger import ascii_tags_loader
from ezdxf.tools.codepage import toencoding

DxfRecord = Sequence[tuple[int, str]]

_UTF8_VERSIONS = {"AC1021", "AC1024", "AC1027", "AC1032"}
_SNIFF_BYTES = 64 * 1024


def group_value(record: DxfRecord | None, code: int) -> str | None:
    if not record:
        return None
    for group_code, value in record:
        if group_code == code:
            return value
    return None


def group_values(record: DxfRecord | None, code: int) -> list[str]:
    if not record:
        return []
    return [value for group_code, value in record if group_code == code]


def record_type(record: DxfRecord | None) -> str | None:
    if not record:
        return None
    code, value = record[0]
    return value.strip() if code == 0 else None


@dataclass(frozen=True)
class Drawing:
    header: Mapping[str, DxfRecord] = field(default_factory=dict)
    tables: Mapping[str, Sequence[DxfRecord]] = field(default_factory=dict)
    blocks: Mapping[str, Sequence[DxfRecord]] = field(default_factory=dict)
    entities: Sequence[DxfRecord] = field(default_factory=tuple)

    @classmethod
    def from_mapping(cls, dxf: Mapping[str, Any]) -> "Drawing":
        return cls(
            header=dict(dxf.get("HEADER") or {}),
            tables=dict(dxf.get("TABLES") or {}),
            blocks=dict(dxf.get("BLOCKS") or {}),
            entities=tuple(dxf.get("ENTITIES") or ()),
        )

    def header_value(self, name: str, code: int) -> str | None:
        return group_value(self.header.get(name), code)

    def table(self, name: str) -> Sequence[DxfRecord]:
        return self.tables.get(name) or ()

    def block(self, name: str) -> Sequence[DxfRecord] | None:
        return self.blocks.get(name)


def read(path: str | Path, *, encoding: str | None = None) -> Drawing:
    data = Path(path).read_bytes()
    return loads(data.decode(encoding or _detect_encoding(data), errors="replace"))


def loads(text: str) -> Drawing:
    stream = io.StringIO(text.replace("\r\n", "\n"))
    tags = ((int(tag.code), str(tag.value).rstrip("\r")) for tag in ascii_tags_loader(stream))
    return _build_drawing(_split_records(tags))


def _detect_encoding(data: bytes) -> str:
    head = data[:_SNIFF_BYTES].decode("latin-1")
    variables = _sniff_header_variables(head.splitlines())
    version = variables.get("$ACADVER", "").upper()
    if version in _UTF8_VERSIONS or version > "AC1032":
        return "utf-8"
    codepage = variables.get("$DWGCODEPAGE")
    if not codepage:
        return "cp1252"
    return toencoding(codepage)


def _sniff_header_variables(lines: list[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    name: str | None = None
    for i in range(0, len(lines) - 1, 2):
        code = lines[i].strip()
        value = lines[i + 1].strip()
        if code == "0" and value == "ENDSEC":
            break
        if code == "9":
            name = value
            continue
        if name in {"$ACADVER", "$DWGCODEPAGE"} and name not in out:
            out[name] = value
    return out


def _split_records(tags: Iterable[tuple[int, str]]) -> Iterator[tuple[tuple[int, str], ...]]:
    current: list[tuple[int, str]] = []
    for tag in tags:
        if tag[0] == 0 and current:
            yield tuple(current)
            current = []
        current.append(tag)
    if current:
        yield tuple(current)


def _build_drawing(records: Iterable[DxfRecord]) -> Drawing:
    header: dict[str, DxfRecord] = {}
    tables: dict[str, list[DxfRecord]] = {}
    blocks: dict[str, list[DxfRecord]] = {}
    entities: list[DxfRecord] = []

    section: str | None = None
    table: list[DxfRecord] | None = None
    block: list[DxfRecord] | None = None

    for record in records:
        kind = record_type(record)
        if kind == "SECTION":
            section = (group_value(record, 2) or "").strip()
            if section == "HEADER":
                header.update(_header_variables(record))
            continue
        if kind == "ENDSEC":
            section = None
            table = None
            block = None
            continue
        if kind == "EOF":
            break

        if section == "TABLES":
            if kind == "TABLE":
                table = tables.setdefault((group_value(record, 2) or "").strip(), [])
            elif kind == "ENDTAB":
                table = None
            elif table is not None:
                table.append(record)
        elif section == "BLOCKS":
            if kind == "BLOCK":
                block = blocks.setdefault((group_value(record, 2) or "").strip(), [])
                block.append(record)
            elif block is not None:
                block.append(record)
                if kind == "ENDBLK":
                    block = None
        elif section == "ENTITIES":
            entities.append(record)

    return Drawing(
        header=header,
        tables={name: tuple(items) for name, items in tables.items()},
        blocks={name: tuple(items) for name, items in blocks.items()},
        entities=tuple(entities),
    )


def _header_variables(record: DxfRecord) -> dict[str, DxfRecord]:
    out: dict[str, DxfRecord] = {}
    name: str | None = None
    values: list[tuple[int, str]] = []
    for code, value in record[2:]:
        if code == 9:
            if name is not None:
                out[name] = tuple(values)
            name = value.strip()
            values = []
            continue
        values.append((code, value))
    if name is not None:
        out[name] = tuple(values)
    return out
