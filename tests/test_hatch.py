from __future__ import annotations

from dxfsvg.colors import resolve_color_index

from tests._dxf_helpers import drawing, record, render


def _square_loop(size: float = 1) -> list[tuple[int, object]]:
    return [
        (91, 1),
        (92, 2),
        (72, 0),
        (73, 1),
        (93, 4),
        (10, 0),
        (20, 0),
        (10, size),
        (20, 0),
        (10, size),
        (20, size),
        (10, 0),
        (20, size),
        (97, 0),
    ]


def _hatch(*groups, handle: str = "3C", solid: bool = False, loop=None) -> tuple:
    return record(
        "HATCH",
        (5, handle),
        (2, "SOLID" if solid else "ANSI31"),
        (70, 1 if solid else 0),
        (71, 0),
        *(loop if loop is not None else _square_loop()),
        (75, 0),
        (76, 1),
        *groups,
    )


def test_solid_hatch_renders_single_path_without_defs() -> None:
    root, box, warnings = render(drawing(_hatch((62, 1), solid=True)))

    assert root.findall("defs") == []
    paths = root.findall("path")
    assert len(paths) == 1
    assert paths[0].get("d") == "M0 0L1 0L1 -1L0 -1Z"
    assert paths[0].get("fill") == resolve_color_index(1)
    assert paths[0].get("fill-rule") == "evenodd"
    assert box.as_dict() == {"x": 0, "y": -1, "w": 1, "h": 1}
    assert warnings.calls == []


def test_edge_loop_lines_are_joined() -> None:
    loop = [(91, 1), (92, 1), (93, 4)]
    for (x1, y1), (x2, y2) in [((0, 0), (2, 0)), ((2, 0), (2, 2)), ((2, 2), (0, 2)), ((0, 2), (0, 0))]:
        loop += [(72, 1), (10, x1), (20, y1), (11, x2), (21, y2)]
    loop.append((97, 0))
    root, _, _ = render(drawing(_hatch(solid=True, loop=loop)))

    assert root.find("path").get("d") == "M0 0L2 0L2 -2L0 -2Z"


def test_edge_loop_full_circle_uses_two_arcs() -> None:
    loop = [(91, 1), (92, 1), (93, 1), (72, 2), (10, 0), (20, 0), (40, 1), (50, 0), (51, 360), (73, 1), (97, 0)]
    root, box, _ = render(drawing(_hatch(solid=True, loop=loop)))

    d = root.find("path").get("d")
    assert d.count("A") == 2
    assert d.endswith("Z")
    assert (box.min_x, box.max_x, box.min_y, box.max_y) == (-1, 1, -1, 1)


def test_multiple_loops_share_one_path() -> None:
    loop = _square_loop(4)
    loop[0] = (91, 2)
    loop += _square_loop(1)[1:]
    root, _, _ = render(drawing(_hatch(solid=True, loop=loop)))

    d = root.find("path").get("d")
    assert d.count("M") == 2
    assert d.count("Z") == 2


def test_linear_gradient_hatch_defines_gradient() -> None:
    entity = _hatch((450, 1), (451, 0), (452, 0), (453, 2), (460, 0), (461, 0), (63, 5), (63, 2), (470, "LINEAR"))
    root, _, _ = render(drawing(entity))

    gradient = root.find("defs/linearGradient")
    assert gradient.get("id") == "hatch-gradient-3C"
    assert [stop.get("stop-color") for stop in gradient.findall("stop")] == [
        resolve_color_index(5),
        resolve_color_index(2),
    ]
    assert root.find("path").get("fill") == "url(#hatch-gradient-3C)"


def test_spherical_gradient_uses_boundary_extent() -> None:
    entity = _hatch((450, 1), (421, 0xFF0000), (421, 0x0000FF), (470, "SPHERICAL"))
    root, _, _ = render(drawing(entity))

    gradient = root.find("defs/radialGradient")
    assert gradient.get("gradientUnits") == "userSpaceOnUse"
    assert (gradient.get("cx"), gradient.get("cy"), gradient.get("r")) == ("0.5", "-0.5", "0.5")
    assert [stop.get("stop-color") for stop in gradient.findall("stop")] == ["#0000ff", "#ff0000"]


def test_pattern_hatch_builds_tiles_and_master_pattern() -> None:
    entity = _hatch(
        (62, 1),
        (78, 1),
        (53, 45),
        (43, 0),
        (44, 0),
        (45, -0.1),
        (46, 0.1),
        (79, 2),
        (49, 0.1),
        (49, -0.05),
        (98, 0),
        (1001, "HATCHBACKGROUNDCOLOR"),
        (1071, 5),
        handle="4D",
    )
    root, _, _ = render(drawing(entity))

    patterns = {pattern.get("id"): pattern for pattern in root.iter("pattern")}
    assert set(patterns) == {"hatch-pattern-4D", "hatch-pattern-4D-0"}
    tile = patterns["hatch-pattern-4D-0"]
    assert tile.get("patternTransform") == "rotate(-45)"
    tile_line = tile.find("line")
    assert tile_line.get("stroke-dasharray") == "0.1 0.05"
    assert tile_line.get("stroke") == resolve_color_index(1)
    rects = patterns["hatch-pattern-4D"].findall("rect")
    assert rects[0].get("fill") == resolve_color_index(5)
    assert rects[1].get("fill") == "url(#hatch-pattern-4D-0)"
    assert root.find("path").get("fill") == "url(#hatch-pattern-4D)"


def test_pattern_hatch_without_lines_falls_back_to_solid() -> None:
    root, _, _ = render(drawing(_hatch((62, 3), (78, 0))))

    assert root.findall("defs") == []
    assert root.find("path").get("fill") == resolve_color_index(3)


def test_hatch_without_boundary_renders_nothing() -> None:
    entity = record("HATCH", (2, "SOLID"), (70, 1), (91, 0), (75, 0))
    root, box, warnings = render(drawing(entity))

    assert list(root) == []
    assert box.is_empty
    assert warnings.calls == []


def test_hatch_ids_fall_back_to_counter_without_handle() -> None:
    first = record("HATCH", (2, "X"), (70, 0), (450, 1), (470, "LINEAR"), *_square_loop())
    second = record("HATCH", (2, "X"), (70, 0), (450, 1), (470, "LINEAR"), *_square_loop())
    root, _, _ = render(drawing(first, second))

    ids = [gradient.get("id") for gradient in root.iter("linearGradient")]
    assert ids == ["hatch-gradient-1", "hatch-gradient-2"]


def test_elliptical_edge_is_sampled_around_the_full_turn() -> None:
    loop = [
        (91, 1), (92, 1), (93, 1),
        (72, 3), (10, 0), (20, 0), (11, 2), (21, 0), (40, 0.5), (50, 0), (51, 360), (73, 1),
        (97, 0),
    ]
    root, box, _ = render(drawing(_hatch(solid=True, loop=loop)))

    d = root.find("path").get("d")
    assert d.count("L") == 31
    assert d.endswith("Z")
    assert (box.min_x, box.max_x, box.min_y, box.max_y) == (-2, 2, -1, 1)


def test_clockwise_arc_edge_bends_the_other_way() -> None:
    loop = [(91, 1), (92, 1), (93, 1), (72, 2), (10, 0), (20, 0), (40, 1), (50, 0), (51, 90), (73, 0), (97, 0)]
    root, _, _ = render(drawing(_hatch(solid=True, loop=loop)))

    assert root.find("path").get("d") == "M1 0A1 1 0 0 1 0 1Z"
