from __future__ import annotations

import itertools
import math

import pytest

from dxfsvg.colors import resolve_color_index
from dxfsvg.render import RenderOptions, create_svg_contents

from tests._dxf_helpers import WarningLog, drawing, element_text, layer, line, record, render


def test_line_endpoints_are_rounded_and_y_flipped() -> None:
    root, box, warnings = render(drawing(line(1.23456, 2, 3, 4.000049)))

    node = root.find("line")
    assert (node.get("x1"), node.get("y1"), node.get("x2"), node.get("y2")) == ("1.2346", "-2", "3", "-4")
    assert node.get("fill") == "none"
    assert node.get("stroke") == "currentColor"
    assert box.as_dict() == {"x": 1.2346, "y": -4, "w": pytest.approx(1.7654), "h": 2}
    assert warnings.calls == []


def test_circle_scenario_uses_layer_color() -> None:
    dwg = drawing(
        record("CIRCLE", (8, "RED"), (10, 0), (20, 0), (40, 5)),
        layers=[layer("RED", 1)],
    )
    root, box, _ = render(dwg)

    node = root.find("circle")
    assert (float(node.get("cx")), float(node.get("cy")), float(node.get("r"))) == (0, 0, 5)
    assert node.get("stroke") == resolve_color_index(1)
    assert box.as_dict() == {"x": -5, "y": -5, "w": 10, "h": 10}


def test_quarter_arc_uses_small_arc_flag() -> None:
    root, box, _ = render(drawing(record("ARC", (10, 0), (20, 0), (40, 1), (50, 0), (51, 90))))

    assert root.find("path").get("d") == "M1 0A1 1 0 0 0 0 -1"
    assert box.as_dict() == {"x": 0, "y": -1, "w": 1, "h": 1}


def test_wide_arc_uses_large_arc_flag_and_axis_extents() -> None:
    root, box, _ = render(drawing(record("ARC", (10, 0), (20, 0), (40, 2), (50, 0), (51, 270))))

    assert root.find("path").get("d") == "M2 0A2 2 0 1 0 0 2"
    assert box.as_dict() == {"x": -2, "y": -2, "w": 4, "h": 4}


def test_full_arc_is_drawn_as_two_halves() -> None:
    root, _, _ = render(drawing(record("ARC", (10, 0), (20, 0), (40, 1), (50, 0), (51, 360))))

    assert root.find("path").get("d").count("A") == 2


def test_full_ellipse_renders_with_exact_extent() -> None:
    root, box, _ = render(drawing(record("ELLIPSE", (10, 0), (20, 0), (11, 0), (21, 2), (40, 0.5))))

    node = root.find("ellipse")
    assert (node.get("rx"), node.get("ry")) == ("2", "1")
    assert node.get("transform") == "rotate(-90)"
    assert box.w == pytest.approx(2)
    assert box.h == pytest.approx(4)


def test_partial_ellipse_is_reported_and_skipped() -> None:
    entity = record("ELLIPSE", (10, 0), (20, 0), (11, 2), (21, 0), (40, 0.5), (41, 0), (42, math.pi))
    root, box, warnings = render(drawing(entity))

    assert list(root) == []
    assert box.is_empty
    assert warnings.calls == [("Elliptical arc cannot be rendered yet.", (entity,))]


def test_straight_lwpolyline_renders_polygon_when_closed() -> None:
    entity = record("LWPOLYLINE", (90, 3), (70, 1), (10, 0), (20, 0), (10, 1), (20, 0), (10, 1), (20, 1))
    root, _, _ = render(drawing(entity))

    assert root.find("polygon").get("points") == "0,0 1,0 1,-1"


def test_bulged_lwpolyline_renders_arc_segment_with_extent() -> None:
    entity = record("LWPOLYLINE", (90, 2), (70, 0), (10, 0), (20, 0), (42, 1), (10, 2), (20, 0))
    root, box, _ = render(drawing(entity))

    assert root.find("path").get("d") == "M0 0A1 1 0 0 0 2 0"
    assert box.min_y == pytest.approx(0)
    assert box.max_y == pytest.approx(1)


def test_polyline_collects_vertices_and_consumes_seqend() -> None:
    dwg = drawing(
        record("POLYLINE", (66, 1), (70, 0)),
        record("VERTEX", (10, 0), (20, 0)),
        record("VERTEX", (10, 3), (20, 4)),
        record("SEQEND"),
    )
    root, box, warnings = render(dwg)

    assert root.find("polyline").get("points") == "0,0 3,-4"
    assert box.as_dict() == {"x": 0, "y": -4, "w": 3, "h": 4}
    assert warnings.calls == []


def test_solid_vertices_follow_dxf_order() -> None:
    quad = record("SOLID", (10, 0), (20, 0), (11, 1), (21, 0), (12, 0), (22, 1), (13, 1), (23, 1), (62, 1))
    triangle = record("SOLID", (10, 0), (20, 0), (11, 1), (21, 0), (12, 0), (22, 1), (13, 0), (23, 1))
    root, _, _ = render(drawing(quad, triangle))

    quad_path, triangle_path = root.findall("path")
    assert quad_path.get("d") == "M0 0L1 0L1 -1L0 -1Z"
    assert quad_path.get("fill") == resolve_color_index(1)
    assert triangle_path.get("d") == "M0 0L1 0L0 -1Z"


def test_text_decorations_split_into_tspans() -> None:
    root, _, _ = render(drawing(record("TEXT", (10, 1), (20, 2), (40, 2.5), (50, 30), (1, "%%uAB%%u C"))))

    text = root.find("text")
    assert text.get("font-size") == "2.5"
    assert text.get("transform") == "rotate(-30 1 -2)"
    spans = text.findall("tspan")
    assert [span.text for span in spans] == ["AB", " C"]
    assert spans[0].get("text-decoration") == "underline"
    assert spans[1].get("text-decoration") is None


def test_text_alignment_point_is_used_when_justified() -> None:
    entity = record("TEXT", (10, 0), (20, 0), (11, 5), (21, 5), (40, 1), (72, 1), (73, 2), (1, "%%c10"))
    root, box, _ = render(drawing(entity))

    text = root.find("text")
    assert (text.get("x"), text.get("y")) == ("5", "-5")
    assert text.get("text-anchor") == "middle"
    assert text.get("dominant-baseline") == "central"
    assert element_text(text) == "⌀10"
    assert box.as_dict() == {"x": 3.5, "y": -5.5, "w": 3, "h": 1}


def test_mtext_lays_out_paragraphs() -> None:
    entity = record("MTEXT", (10, 2), (20, 3), (40, 1), (71, 5), (3, "first\\P"), (1, "second"))
    root, _, _ = render(drawing(entity))

    text = root.find("text")
    assert text.get("dominant-baseline") == "central"
    assert text.get("text-anchor") == "middle"
    assert text.text == "first"
    paragraph = text.find("tspan")
    assert (paragraph.get("x"), paragraph.get("dy"), paragraph.text) == ("2", "1.25em", "second")


def test_leader_draws_arrowhead_at_first_vertex() -> None:
    entity = record("LEADER", (71, 1), (76, 2), (10, 0), (20, 0), (10, 10), (20, 0))
    root, _, _ = render(drawing(entity))

    assert root.find("polyline").get("points") == "0,0 10,0"
    arrow = root.find("path")
    assert arrow.get("d").startswith("M0 0L")


def test_point_renders_nothing_without_diagnostics() -> None:
    root, box, warnings = render(drawing(record("POINT", (10, 1), (20, 1))))

    assert list(root) == []
    assert box.is_empty
    assert warnings.calls == []


def test_unknown_entity_type_is_reported_once_and_leaves_box_untouched() -> None:
    unknown = record("FOO", (10, 100), (20, 100))
    root, box, warnings = render(drawing(line(0, 0, 1, 1), unknown))

    assert [node.tag for node in root] == ["line"]
    assert warnings.calls == [("Unknown entity type: FOO", (unknown,))]
    assert box.as_dict() == {"x": 0, "y": -1, "w": 1, "h": 1}


def test_sanity_bound_failure_is_isolated_to_one_entity() -> None:
    broken = line(2e6, 0, 1, 1)
    root, box, warnings = render(drawing(broken, line(0, 0, 1, 1)))

    assert len(root.findall("line")) == 1
    assert warnings.messages == ["Error occurred: group code 10 is invalid (2000000)"]
    assert warnings.calls[0][1] == (broken,)
    assert box.as_dict() == {"x": 0, "y": -1, "w": 1, "h": 1}


def test_bounding_box_is_independent_of_entity_order() -> None:
    entities = [
        line(-3, 1, 4, 2),
        record("CIRCLE", (10, 10), (20, -2), (40, 1.5)),
        record("ARC", (10, 0), (20, 5), (40, 2), (50, 45), (51, 200)),
    ]
    boxes = {
        tuple(create_svg_contents(drawing(*order), RenderOptions(warn=WarningLog()))[1].as_dict().values())
        for order in itertools.permutations(entities)
    }
    assert len(boxes) == 1


def test_add_attributes_and_extrusion_style() -> None:
    entity = line(0, 0, 1, 1, (5, "2F"), (230, -1))
    root, _, _ = render(
        drawing(entity),
        add_attributes=lambda record_: {"data-handle": dict(record_).get(5)},
    )

    node = root.find("line")
    assert node.get("data-handle") == "2F"
    assert node.get("style") == "transform:rotateY(180deg)"


def test_stroke_attributes_come_from_style_context() -> None:
    dwg = drawing(line(0, 0, 1, 1, (8, "A"), (370, 25)), layers=[layer("A", 3)])
    root, _, _ = render(dwg)

    node = root.find("line")
    assert node.get("stroke") == resolve_color_index(3)
    assert node.get("stroke-width") == "2.5"
    assert node.get("stroke-dasharray") is None


def test_default_warn_sink_logs_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level("DEBUG", logger="dxfsvg.render")

    create_svg_contents(drawing(record("FOO")))

    assert "Unknown entity type: FOO" in caplog.text


def test_table_draws_grid_cells_and_reports_block_cells() -> None:
    entity = record(
        "ACAD_TABLE",
        (10, 10),
        (20, 5),
        (141, 1),
        (141, 1),
        (142, 2),
        (142, 2),
        (171, 1),
        (1, "a"),
        (171, 1),
        (1, "b"),
        (171, 2),
        (173, 1),
        (171, 1),
        (64, 1),
        (1, "d"),
    )
    root, box, warnings = render(drawing(entity))

    group = root.find("g")
    assert group.get("transform") == "translate(10 -5)"
    lines = [(node.get("x1"), node.get("y1"), node.get("x2"), node.get("y2")) for node in group.findall("line")]
    assert len(lines) == 7
    assert ("0", "0", "0", "1") in lines
    assert ("0", "1", "0", "2") not in lines
    assert ("4", "0", "4", "2") in lines
    texts = group.findall("text")
    assert [element_text(node) for node in texts] == ["a", "b", "d"]
    assert texts[0].get("fill") == "currentColor"
    assert texts[2].get("fill") == resolve_color_index(1)
    assert warnings.messages == ['Table cell type "block" cannot be rendered yet.']
    assert box.as_dict() == {"x": 10, "y": -5, "w": 4, "h": 2}
