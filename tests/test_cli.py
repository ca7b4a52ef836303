"""Tests for the ``scopevars`` scenario inspector."""

from __future__ import annotations

import json

import pytest

from scopevars.runtime import cli as runtime_cli
from scopevars.runtime import build_scenario, load_scenario


SCENARIO = {
    "scopes": [
        {
            "id": "root",
            "variables": {
                "count": {"value": 1},
                "name": {"value": "Ann", "exposeAs": "user"},
            },
        },
        {
            "id": "child",
            "parent": "root",
            "variables": {"v": {"inherited": "user"}},
        },
    ],
    "writes": [{"scope": "child", "name": "v", "value": "Jane"}],
}


def test_build_scenario_applies_writes():
    roots, scopes = build_scenario(SCENARIO)

    assert roots == [scopes["root"]]
    assert scopes["child"].parent is scopes["root"]
    assert scopes["root"].name == "Jane"
    assert scopes["child"].v == "Jane"


def test_load_scenario_accepts_inline_json_and_paths(tmp_path):
    inline = json.dumps(SCENARIO)
    assert load_scenario(inline) == SCENARIO

    path = tmp_path / "scenario.json"
    path.write_text(inline, encoding="utf-8")
    assert load_scenario(str(path)) == SCENARIO
    assert load_scenario(SCENARIO) is SCENARIO


def test_parse_args_defaults():
    params = runtime_cli.parse_args(["scenario.json"])

    assert params.scenario == "scenario.json"
    assert params.production is False
    assert params.json is False
    assert params.viz is None
    assert params.log_level == "WARNING"


def test_main_prints_scope_tree(capsys):
    assert runtime_cli.main([json.dumps(SCENARIO)]) == 0
    out = capsys.readouterr().out

    assert "Scope(root)" in out
    assert "name = 'Jane'  [value, exposed as 'user']" in out
    assert "v = 'Jane'  [inherited, <- 'user', public]" in out


def test_main_json_output_with_usage(capsys):
    assert runtime_cli.main([json.dumps(SCENARIO), "--json", "--usage"]) == 0
    payload = json.loads(capsys.readouterr().out)

    root = payload["scopes"][0]
    assert root["label"] == "root"
    assert root["children"][0]["variables"][0]["inherits"] == "user"
    kinds = {edge["kind"] for edge in payload["usage"][0]["edges"]}
    assert {"parent", "declares", "exposes", "uses", "inherits"} <= kinds


def test_main_production_mode_has_no_usage_edges(capsys):
    args = [json.dumps(SCENARIO), "--production", "--json", "--usage"]
    assert runtime_cli.main(args) == 0
    payload = json.loads(capsys.readouterr().out)

    kinds = {edge["kind"] for edge in payload["usage"][0]["edges"]}
    assert "uses" not in kinds
    assert "inherits" in kinds


def test_main_reports_leaks(capsys):
    scenario = dict(SCENARIO, dispose=["root"])
    assert runtime_cli.main([json.dumps(scenario), "--leaks"]) == 0
    out = capsys.readouterr().out

    assert "Leak check:" in out
    assert "✗" in out


def test_main_reports_clean_disposal(capsys):
    scenario = dict(SCENARIO, dispose=["child", "root"])
    assert runtime_cli.main([json.dumps(scenario), "--leaks"]) == 0
    out = capsys.readouterr().out

    assert "✓ No disposed scope is still referenced" in out


def test_main_dot_output(capsys):
    assert runtime_cli.main([json.dumps(SCENARIO), "--dot"]) == 0
    assert "digraph" in capsys.readouterr().out


def test_main_viz_exports_file(tmp_path, capsys):
    output = tmp_path / "scopes.dot"
    assert runtime_cli.main([json.dumps(SCENARIO), "--viz", str(output)]) == 0

    assert output.exists()
    assert "Graphviz visualization exported" in capsys.readouterr().out


@pytest.mark.parametrize(
    "scenario, message",
    [
        (
            {"scopes": [{"id": "root", "variables": {"x": {"get": "root.y"}}}]},
            "cannot be expressed in a scenario",
        ),
        ({"scopes": [{"id": "child", "parent": "nowhere"}]}, "unknown parent"),
        ({"scopes": [{"id": "a"}, {"id": "a"}]}, "Duplicate scope id"),
        (
            {"scopes": [{"id": "root", "variables": {"x": {"value": 1, "private": True, "exposeAs": "y"}}}]},
            "cannot be combined",
        ),
    ],
)
def test_main_rejects_invalid_scenarios(scenario, message, capsys):
    assert runtime_cli.main([json.dumps(scenario)]) == 2
    assert message in capsys.readouterr().err
