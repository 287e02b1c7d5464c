from __future__ import annotations

import argparse
import sys
from collections import Counter
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Sequence

from .bbox import BoundingBox
from .convert import to_svg
from .document import read, record_type
from .entity import is_attachment, is_seqend
from .render import create_svg_contents


def _package_version() -> str:
    try:
        return version("dxfsvg")
    except PackageNotFoundError:
        return "0.0.0"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dxfsvg", description="Inspect DXF files and render them to SVG.")
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_package_version()}",
    )
    subparsers = parser.add_subparsers(dest="command")

    inspect_parser = subparsers.add_parser("inspect", help="Show basic DXF information.")
    inspect_parser.add_argument("path", help="Path to DXF file.")
    inspect_parser.add_argument(
        "--encoding",
        default=None,
        help="Text encoding of the DXF file (detected from the header by default).",
    )

    convert_parser = subparsers.add_parser("convert", help="Render DXF entities to an SVG file.")
    convert_parser.add_argument("input_path", help="Path to DXF file.")
    convert_parser.add_argument(
        "output_path",
        nargs="?",
        default=None,
        help="Path to output SVG file (defaults to the input path with an .svg suffix).",
    )
    convert_parser.add_argument(
        "--encoding",
        default=None,
        help="Text encoding of the DXF file (detected from the header by default).",
    )
    convert_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print a warning line for every entity that could not be rendered.",
    )
    convert_parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any entity cannot be rendered.",
    )
    return parser


def _format_box(box: BoundingBox) -> str:
    if box.is_empty:
        return "empty"
    return box.view_box()


def _quiet(message: str, *context: Any) -> None:
    pass


def _run_inspect(path: str, *, encoding: str | None = None) -> int:
    file_path = Path(path)
    if not file_path.exists():
        print(f"error: file not found: {file_path}", file=sys.stderr)
        return 2

    try:
        drawing = read(file_path, encoding=encoding)
        _, box = create_svg_contents(drawing, warn=_quiet)
    except Exception as exc:
        print(f"error: failed to read DXF: {exc}", file=sys.stderr)
        return 2

    counts: Counter[str] = Counter(
        record_type(entity) or ""
        for entity in drawing.entities
        if not is_attachment(entity) and not is_seqend(entity)
    )

    print(f"file: {file_path}")
    print(f"version: {(drawing.header_value('$ACADVER', 1) or 'unknown').strip()}")
    print(f"total_entities: {sum(counts.values())}")
    for dxftype, count in sorted(counts.items()):
        print(f"{dxftype}: {count}")
    print(f"layers: {sum(1 for record in drawing.table('LAYER') if record_type(record) == 'LAYER')}")
    print(f"line_types: {sum(1 for record in drawing.table('LTYPE') if record_type(record) == 'LTYPE')}")
    print(f"blocks: {len(drawing.blocks)}")
    print(f"bounding_box: {_format_box(box)}")
    return 0


def _run_convert(
    input_path: str,
    output_path: str | None,
    *,
    encoding: str | None = None,
    verbose: bool = False,
    strict: bool = False,
) -> int:
    dxf_path = Path(input_path)
    if not dxf_path.exists():
        print(f"error: file not found: {dxf_path}", file=sys.stderr)
        return 2

    def warn(message: str, *context: Any) -> None:
        if verbose:
            print(f"warning: {message}", file=sys.stderr)

    try:
        result = to_svg(dxf_path, output_path, encoding=encoding, strict=strict, warn=warn)
    except Exception as exc:
        print(f"error: failed to convert DXF to SVG: {exc}", file=sys.stderr)
        return 2

    print(f"input: {result.source_path}")
    print(f"output: {result.output_path}")
    print(f"total_entities: {result.total_entities}")
    print(f"rendered_entities: {result.rendered_entities}")
    print(f"skipped_entities: {result.skipped_entities}")
    for dxftype, count in result.skipped_by_type.items():
        print(f"skipped[{dxftype}]: {count}")
    print(f"bounding_box: {_format_box(result.bounding_box)}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command == "inspect":
        return _run_inspect(args.path, encoding=args.encoding)
    if args.command == "convert":
        return _run_convert(
            args.input_path,
            args.output_path,
            encoding=args.encoding,
            verbose=bool(args.verbose),
            strict=bool(args.strict),
        )

    parser.print_help()
    return 0
