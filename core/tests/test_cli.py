"""Tests for the director-node command line."""

import json

import pytest

from director_node import cli

GRAPH = {
    "version": "v1",
    "nodes": [
        {"id": "p1", "type": "prompt", "data": {"text": "a lighthouse"}},
        {"id": "c1", "type": "combineText", "data": {}},
        {"id": "i1", "type": "imageGen", "data": {}},
    ],
    "edges": [
        {
            "id": "e1",
            "source": "p1",
            "target": "c1",
            "sourceHandle": "prompt",
            "targetHandle": "input",
        },
        {
            "id": "e2",
            "source": "c1",
            "target": "i1",
            "sourceHandle": "combined_prompt",
            "targetHandle": "combined_prompt",
        },
    ],
}


@pytest.fixture
def graph_file(tmp_path):
    path = tmp_path / "scene.json"
    path.write_text(json.dumps(GRAPH), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


def test_validate_ok(graph_file, capsys):
    assert cli.main(["validate", str(graph_file)]) == 0
    assert "Graph is valid (3 nodes, 2 edges)" in capsys.readouterr().out


def test_validate_reports_forbidden_edge(tmp_path, capsys):
    graph = {
        "nodes": [
            {"id": "p1", "type": "prompt", "data": {}},
            {"id": "i1", "type": "imageGen", "data": {}},
        ],
        "edges": [{"id": "e1", "source": "p1", "target": "i1"}],
    }
    path = tmp_path / "bad.json"
    path.write_text(json.dumps(graph), encoding="utf-8")

    assert cli.main(["validate", str(path)]) == 1
    assert "✗" in capsys.readouterr().out


def test_validate_unreadable_file(tmp_path, capsys):
    assert cli.main(["validate", str(tmp_path / "missing.json")]) == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_plan_prints_dependency_order(graph_file, capsys):
    assert cli.main(["plan", str(graph_file), "i1"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines == ["  1. p1 (prompt)", "  2. c1 (combineText)", "  3. i1 (imageGen)"]


def test_plan_unknown_node(graph_file, capsys):
    assert cli.main(["plan", str(graph_file), "ghost"]) == 1
    assert "ghost" in capsys.readouterr().err


def test_run_then_show(graph_file, tmp_path, capsys):
    store = tmp_path / "store"
    exit_code = cli.main(
        ["run", str(graph_file), "i1", "--store", str(store), "--media", str(tmp_path / "media")]
    )

    assert exit_code == 0
    view = json.loads(capsys.readouterr().out)
    assert view["status"] == "completed"
    assert view["node_id"] == "i1"
    assert view["asset_url"].startswith("file://")
    assert list((tmp_path / "media").rglob("i1_*.png"))

    assert cli.main(["show", view["id"], "--store", str(store)]) == 0
    assert json.loads(capsys.readouterr().out)["id"] == view["id"]


def test_run_unknown_node(graph_file, tmp_path, capsys):
    exit_code = cli.main(["run", str(graph_file), "ghost", "--store", str(tmp_path / "store")])
    assert exit_code == 1
    assert "No matching nodes found in graph" in capsys.readouterr().err


def test_show_missing_run(tmp_path, capsys):
    assert cli.main(["show", "nope", "--store", str(tmp_path / "store")]) == 1
    assert "not found" in capsys.readouterr().err
