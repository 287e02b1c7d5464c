from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path

import pytest

import dxfsvg.cli as cli_module
from dxfsvg.convert import SVG_NAMESPACE, create_svg_string, to_svg

from tests._dxf_helpers import drawing, dxf_text, line, section


def _write_sample(tmp_path: Path) -> Path:
    path = tmp_path / "in.dxf"
    path.write_text(
        dxf_text(
            *section("HEADER", (9, "$ACADVER"), (1, "AC1015")),
            *section(
                "ENTITIES",
                (0, "LINE"),
                (8, "0"),
                (10, 0.0),
                (20, 0.0),
                (11, 10.0),
                (21, 5.0),
                (0, "FOO"),
                (10, 100.0),
                (20, 100.0),
            ),
            (0, "EOF"),
        ),
        encoding="utf-8",
    )
    return path


def test_cli_convert_writes_svg_next_to_input(tmp_path: Path, capsys) -> None:
    source = _write_sample(tmp_path)

    code = cli_module.main(["convert", str(source)])

    assert code == 0
    output = source.with_suffix(".svg")
    root = ET.parse(output).getroot()
    assert root.tag == f"{{{SVG_NAMESPACE}}}svg"
    assert root.get("viewBox") == "0 -5 10 5"
    captured = capsys.readouterr()
    assert f"output: {output}" in captured.out
    assert "total_entities: 2" in captured.out
    assert "rendered_entities: 1" in captured.out
    assert "skipped_entities: 1" in captured.out
    assert "skipped[FOO]: 1" in captured.out
    assert "bounding_box: 0 -5 10 5" in captured.out
    assert captured.err == ""


def test_cli_convert_verbose_reports_warnings(tmp_path: Path, capsys) -> None:
    source = _write_sample(tmp_path)
    target = tmp_path / "out" / "drawing.svg"

    code = cli_module.main(["convert", str(source), str(target), "--verbose"])

    assert code == 0
    assert target.exists()
    assert "warning: Unknown entity type: FOO" in capsys.readouterr().err


def test_cli_convert_strict_fails_on_skipped_entities(tmp_path: Path, capsys) -> None:
    source = _write_sample(tmp_path)

    code = cli_module.main(["convert", str(source), "--strict"])

    assert code == 2
    assert not source.with_suffix(".svg").exists()
    assert "error: failed to convert DXF to SVG: failed to render 1 entities (FOO:1)" in capsys.readouterr().err


def test_cli_convert_reports_conversion_errors(monkeypatch, tmp_path: Path, capsys) -> None:
    source = _write_sample(tmp_path)

    def broken(*args, **kwargs):  # noqa: ANN002, ANN003
        raise RuntimeError("boom")

    monkeypatch.setattr(cli_module, "to_svg", broken)

    assert cli_module.main(["convert", str(source)]) == 2
    assert "error: failed to convert DXF to SVG: boom" in capsys.readouterr().err


def test_cli_missing_file_returns_error(tmp_path: Path, capsys) -> None:
    missing = tmp_path / "missing.dxf"

    assert cli_module.main(["convert", str(missing)]) == 2
    assert cli_module.main(["inspect", str(missing)]) == 2
    assert capsys.readouterr().err.count("error: file not found:") == 2


def test_cli_inspect_summarizes_drawing(tmp_path: Path, capsys) -> None:
    source = _write_sample(tmp_path)

    code = cli_module.main(["inspect", str(source)])

    assert code == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        f"file: {source}",
        "version: AC1015",
        "total_entities: 2",
        "FOO: 1",
        "LINE: 1",
        "layers: 0",
        "line_types: 0",
        "blocks: 0",
        "bounding_box: 0 -5 10 5",
    ]


def test_cli_without_command_prints_help(capsys) -> None:
    assert cli_module.main([]) == 0
    assert "usage: dxfsvg" in capsys.readouterr().out


def test_create_svg_string_for_empty_drawing() -> None:
    root = ET.fromstring(create_svg_string(drawing()))

    assert root.get("viewBox") == "0 0 0 0"
    assert (root.get("width"), root.get("height")) == ("0", "0")
    assert list(root) == []


def test_to_svg_accepts_in_memory_drawing(tmp_path: Path) -> None:
    target = tmp_path / "memory.svg"

    result = to_svg(drawing(line(0, 0, 2, 2)), target)

    assert result.source_path == ""
    assert result.output_path == str(target)
    assert (result.total_entities, result.rendered_entities, result.skipped_entities) == (1, 1, 0)
    assert result.skipped_by_type == {}
    assert result.bounding_box.as_dict() == {"x": 0, "y": -2, "w": 2, "h": 2}


def test_to_svg_requires_output_path_for_in_memory_drawing() -> None:
    with pytest.raises(ValueError, match="output_path is required"):
        to_svg(drawing(line(0, 0, 1, 1)))


def test_file_encoding_does_not_override_multibyte_codepage(tmp_path: Path) -> None:
    source = tmp_path / "legacy.dxf"
    source.write_text(
        dxf_text(
            *section("HEADER", (9, "$ACADVER"), (1, "AC1015")),
            *section("ENTITIES", (0, "TEXT"), (10, 0.0), (20, 0.0), (40, 1.0), (1, "\\M+18140")),
            (0, "EOF"),
        ),
        encoding="cp1252",
    )
    target = tmp_path / "legacy.svg"

    to_svg(source, target, encoding="cp1252")

    text = ET.parse(target).getroot().find(f"{{{SVG_NAMESPACE}}}text")
    assert text.text == "\u3000"
