from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from .bbox import BoundingBox
from .document import Drawing, read, record_type
from .entity import Failed, Unsupported
from .markup import element
from .render import EntityRenderer, RenderOptions, create_svg_contents

SVG_NAMESPACE = "http://www.w3.org/2000/svg"


@dataclass(frozen=True)
class SvgResult:
    source_path: str
    output_path: str
    total_entities: int
    rendered_entities: int
    skipped_entities: int
    skipped_by_type: dict[str, int]
    bounding_box: BoundingBox


def svg_document(contents: str, box: BoundingBox) -> str:
    width = 0 if box.is_empty else box.w
    height = 0 if box.is_empty else box.h
    return element(
        "svg",
        {"xmlns": SVG_NAMESPACE, "viewBox": box.view_box(), "width": width, "height": height},
        contents,
    )


def create_svg_string(
    drawing: Drawing | Mapping[str, Any],
    options: RenderOptions | None = None,
    **overrides: Any,
) -> str:
    contents, box = create_svg_contents(drawing, options, **overrides)
    return svg_document(contents, box)


def to_svg(
    source: str | Path | Drawing,
    output_path: str | Path | None = None,
    *,
    encoding: str | None = None,
    strict: bool = False,
    options: RenderOptions | None = None,
    **overrides: Any,
) -> SvgResult:
    source_path, drawing = _resolve_drawing(source, encoding)
    resolved = options or RenderOptions()
    if overrides:
        resolved = dataclasses.replace(resolved, **overrides)

    renderer = EntityRenderer(drawing, resolved)
    box = BoundingBox()
    contents = ""
    total = 0
    skipped_by_type: dict[str, int] = {}
    for entity, outcome in renderer.outcomes(drawing.entities):
        total += 1
        contents += renderer.accept(entity, outcome, box)
        if isinstance(outcome, (Unsupported, Failed)):
            dxftype = record_type(entity) or ""
            skipped_by_type[dxftype] = skipped_by_type.get(dxftype, 0) + 1

    skipped = sum(skipped_by_type.values())
    if strict and skipped > 0:
        summary = ", ".join(f"{dxftype}:{count}" for dxftype, count in sorted(skipped_by_type.items()))
        raise ValueError(f"failed to render {skipped} entities ({summary})")

    out_path = Path(output_path) if output_path is not None else _default_output_path(source_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(svg_document(contents, box), encoding="utf-8")

    return SvgResult(
        source_path=source_path,
        output_path=str(out_path),
        total_entities=total,
        rendered_entities=total - skipped,
        skipped_entities=skipped,
        skipped_by_type=dict(sorted(skipped_by_type.items())),
        bounding_box=box,
    )


def _default_output_path(source_path: str) -> Path:
    if not source_path:
        raise ValueError("output_path is required when rendering an in-memory drawing")
    return Path(source_path).with_suffix(".svg")


def _resolve_drawing(source: str | Path | Drawing, encoding: str | None) -> tuple[str, Drawing]:
    if isinstance(source, Drawing):
        return "", source
    return str(source), read(source, encoding=encoding)
