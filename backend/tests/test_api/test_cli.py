"""Tests for the command-line entry point."""

import json

from mapsight.cli import run
from tests.conftest import EMPTY_SVG, SIMPLE_MAP_SVG, VERTICAL_MAP_SVG


def _write(tmp_path, content: str):
    path = tmp_path / "map.svg"
    path.write_text(content, encoding="utf-8")
    return str(path)


def test_cli_prints_tree(tmp_path, capsys):
    assert run([_write(tmp_path, SIMPLE_MAP_SVG)]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["meta"] == {"node_count": 3, "root_count": 1}


def test_cli_debug(tmp_path, capsys):
    assert run([_write(tmp_path, SIMPLE_MAP_SVG), "--debug", "--indent", "0"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["detected_root"] == "node_0"


def test_cli_root_override(tmp_path, capsys):
    assert run([_write(tmp_path, SIMPLE_MAP_SVG), "--root", "node_2"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["tree"][0]["title"] == "Beta"


def test_cli_vertical_axis(tmp_path, capsys):
    assert run([_write(tmp_path, VERTICAL_MAP_SVG), "--axis", "y"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["tree"][0]["title"] == "Top"


def test_cli_reports_errors(tmp_path, capsys):
    assert run([_write(tmp_path, EMPTY_SVG)]) == 1
    captured = capsys.readouterr()
    assert captured.out == ""
    assert "mapsight:" in captured.err


def test_cli_missing_file(tmp_path, capsys):
    assert run([str(tmp_path / "absent.svg")]) == 1
    assert "cannot read" in capsys.readouterr().err
