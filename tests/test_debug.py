"""Development-mode bookkeeping and leak detection."""

from __future__ import annotations

import pytest

from scopevars import constants
from scopevars.runtime import (
    NullUsageGraph,
    UsageGraph,
    create_scope,
    define_variable,
    dispose_scope,
    find_leaks,
    get_usage_graph,
    is_development_mode,
    set_development_mode,
    set_usage_graph,
    used_by,
)


def _family():
    root = create_scope(label="root")
    define_variable(root, "theme", {"value": "light"})
    child = create_scope(root, label="child")
    define_variable(child, "look", {"inherited": "theme"})
    return root, child


def test_bottom_up_disposal_leaves_no_leaks():
    root, child = _family()

    dispose_scope(child)
    dispose_scope(root)

    assert find_leaks() == []


def test_disposing_a_parent_first_is_reported():
    root, child = _family()

    dispose_scope(root)
    leaks = find_leaks()

    kinds = sorted(leak.kind for leak in leaks)
    assert kinds == ["inherited by", "orphan", "used by"]
    orphan = next(leak for leak in leaks if leak.kind == "orphan")
    assert orphan.scope is root
    assert orphan.holders == [child]
    assert all(leak.describe() for leak in leaks)


def test_leak_clears_once_children_are_disposed():
    root, child = _family()

    dispose_scope(root)
    dispose_scope(child)

    assert find_leaks() == []


def test_production_mode_skips_bookkeeping():
    set_usage_graph(NullUsageGraph())
    root, child = _family()
    theme = child.look

    dispose_scope(root)

    assert theme == "light"
    assert not is_development_mode()
    assert find_leaks() == []
    assert used_by(root._self_table.own["theme"]) == set()


def test_set_development_mode_returns_previous_flag():
    graph = get_usage_graph()

    assert set_development_mode(True) is True
    assert get_usage_graph() is graph

    assert set_development_mode(False) is True
    assert isinstance(get_usage_graph(), NullUsageGraph)
    assert not get_usage_graph().enabled

    assert set_development_mode(True) is False
    assert isinstance(get_usage_graph(), UsageGraph)


def test_set_usage_graph_rejects_foreign_objects():
    with pytest.raises(TypeError):
        set_usage_graph(object())


@pytest.mark.parametrize(
    "value, expected",
    [
        ("development", True),
        ("DEV", True),
        ("test", True),
        ("production", False),
        (" prod ", False),
    ],
)
def test_environment_selects_mode(value, expected):
    assert constants._detect_development_mode({constants.ENV_VAR: value}) is expected


def test_unset_environment_follows_debug_flag():
    assert constants._detect_development_mode({}) is __debug__
