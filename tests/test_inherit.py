"""Inherited variables: lazy ancestor lookup, defaults and two-way binding."""

from __future__ import annotations

import logging

from scopevars.runtime import (
    Effect,
    create_scope,
    define_variable,
    descriptors,
    dispose_scope,
    explain_inheritance,
    inherited_by,
    inherited_target,
    read_inherited,
    reparent_scope,
    write_inherited,
)


def test_inherited_binding_is_two_way_across_levels():
    root = create_scope(label="root")
    define_variable(root, "theme", {"value": "light"})
    middle = create_scope(root)
    leaf = create_scope(middle)
    define_variable(leaf, "look", {"inherited": "theme"})

    assert leaf.look == "light"

    leaf.look = "dark"
    assert root.theme == "dark"

    root.theme = "contrast"
    assert leaf.look == "contrast"


def test_nearest_exposing_ancestor_wins():
    root = create_scope()
    define_variable(root, "theme", {"value": "root"})
    middle = create_scope(root)
    define_variable(middle, "theme", {"value": "middle"})
    leaf = create_scope(middle)
    define_variable(leaf, "look", {"inherited": "theme"})

    assert leaf.look == "middle"
    assert inherited_target(descriptors(leaf)["look"]) is descriptors(middle)["theme"]


def test_inherited_source_uses_exposure_name():
    root = create_scope()
    define_variable(root, "name", {"value": "Ann", "exposeAs": "user"})
    child = create_scope(root)
    define_variable(child, {"byName": {"inherited": "name"}, "byUser": {"inherited": "user"}})

    assert child.byName is None
    assert child.byUser == "Ann"


def test_private_variables_are_not_inheritable():
    root = create_scope()
    define_variable(root, "secret", {"value": 1, "private": True})
    child = create_scope(root)
    define_variable(child, "copy", {"inherited": "secret", "default": "fallback"})

    assert child.copy == "fallback"


def test_inheritance_skips_the_declaring_scope():
    root = create_scope()
    define_variable(root, "x", {"value": "outer"})
    child = create_scope(root)
    define_variable(child, {"x": {"value": "inner"}, "up": {"inherited": "x"}})

    assert child.up == "outer"


def test_default_is_used_without_source():
    root = create_scope()
    define_variable(root, "answer", {"inherited": "missing", "default": 42})

    assert root.answer == 42


def test_default_initializer_runs_once_with_the_scope():
    root = create_scope()
    calls = []

    def initializer(scope):
        calls.append(scope)
        return ["fresh"]

    define_variable(root, "items", {"inherited": "missing", "defaultInitializer": initializer})

    first = root.items
    second = root.items

    assert first == ["fresh"]
    assert first is second
    assert calls == [root]


def test_write_without_source_goes_to_fallback():
    root = create_scope()
    define_variable(root, "local", {"inherited": "missing", "default": 1})
    effect = Effect(lambda: root.local)

    root.local = 2

    assert root.local == 2
    assert effect.last_value == 2


def test_late_exposure_notifies_readers():
    root = create_scope()
    child = create_scope(root)
    define_variable(child, "theme", {"inherited": "theme", "default": "none"})
    effect = Effect(lambda: child.theme)
    assert effect.last_value == "none"

    define_variable(root, "theme", {"value": "light"})

    assert effect.last_value == "light"
    assert inherited_by(descriptors(root)["theme"]) == {descriptors(child)["theme"]}


def test_losing_the_source_warns(caplog):
    first = create_scope(label="first")
    define_variable(first, "theme", {"value": "light"})
    elsewhere = create_scope(label="elsewhere")
    child = create_scope(first, label="child")
    define_variable(child, "look", {"inherited": "theme", "default": "plain"})
    assert child.look == "light"

    with caplog.at_level(logging.WARNING):
        reparent_scope(child, elsewhere)
        assert child.look == "plain"

    assert "lost its inherited source" in caplog.text
    assert inherited_by(descriptors(first)["theme"]) == set()


def test_inherited_by_follows_redeclaration():
    root = create_scope()
    old = define_variable(root, "theme", {"value": "light"})
    child = create_scope(root)
    look = define_variable(child, "look", {"inherited": "theme"})
    assert inherited_by(old) == {look}

    new = define_variable(root, "theme", {"value": "dark"})

    assert inherited_by(old) == set()
    assert child.look == "dark"
    assert inherited_by(new) == {look}
    assert inherited_target(look) is new


def test_disposing_the_inheritor_removes_edges():
    root = create_scope()
    theme = define_variable(root, "theme", {"value": "light"})
    child = create_scope(root)
    define_variable(child, "look", {"inherited": "theme"})
    assert len(inherited_by(theme)) == 1

    dispose_scope(child)

    assert inherited_by(theme) == set()


def test_changing_the_alias_drops_the_binding():
    root = create_scope()
    define_variable(root, "name", {"value": "Ann", "exposeAs": "user"})
    child = create_scope(root)
    define_variable(child, "who", {"inherited": "user", "default": "nobody"})
    effect = Effect(lambda: child.who)
    assert effect.last_value == "Ann"

    define_variable(root, "name", {"value": "Ann", "exposeAs": "person"})

    assert effect.last_value == "nobody"
    assert inherited_target(descriptors(child)["who"]) is None


def test_explain_inheritance_walks_chained_inheritance():
    root = create_scope()
    source = define_variable(root, "theme", {"value": "light"})
    middle = create_scope(root)
    relay = define_variable(middle, "theme", {"inherited": "theme"})
    leaf = create_scope(middle)
    look = define_variable(leaf, "look", {"inherited": "theme"})

    assert leaf.look == "light"
    assert explain_inheritance(look) == [look, relay, source]


def test_read_and_write_inherited_helpers():
    root = create_scope()
    define_variable(root, "theme", {"value": "light"})
    child = create_scope(root)
    look = define_variable(child, "look", {"inherited": "theme"})

    write_inherited(look, "dark")

    assert root.theme == "dark"
    assert read_inherited(look) == "dark"
