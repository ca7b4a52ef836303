"""Command-line inspector for scope scenarios."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .analysis import (
    build_graphviz,
    build_usage_digraph,
    export_graphviz,
    print_scopes,
    scope_to_dict,
    usage_graph_to_dict,
)
from .core import DeclarationError, ScopeDisposedError
from .debug import find_leaks, set_development_mode
from .declare import define_variable
from .scope import create_scope, dispose_scope

logger = logging.getLogger(__name__)

_CODE_ONLY_OPTIONS = ("get", "set", "default_initializer", "defaultInitializer")


def load_scenario(source):
    """Read a scenario from a path, a JSON string or an already parsed dict."""

    if isinstance(source, dict):
        return source
    if str(source).lstrip().startswith("{"):
        return json.loads(source)
    path = Path(source)
    if path.exists():
        return json.loads(path.read_text(encoding="utf-8"))
    return json.loads(source)


def build_scenario(data):
    """Create the scopes, writes and disposals described by ``data``.

    Returns ``(roots, scopes)`` where ``scopes`` maps scenario ids to scopes.
    """

    if not isinstance(data, dict):
        raise TypeError("Scenario must be a JSON object")
    scopes = {}
    roots = []
    for entry in data.get("scopes", []):
        scope_id = entry.get("id")
        if not scope_id:
            raise ValueError("Every scenario scope needs an 'id'")
        if scope_id in scopes:
            raise ValueError(f"Duplicate scope id {scope_id!r}")
        parent_id = entry.get("parent")
        if parent_id is not None and parent_id not in scopes:
            raise ValueError(f"Scope {scope_id!r} names unknown parent {parent_id!r}")
        parent = scopes.get(parent_id)
        scope = create_scope(parent, label=scope_id)
        scopes[scope_id] = scope
        if parent is None:
            roots.append(scope)

        variables = entry.get("variables") or {}
        for name, options in variables.items():
            code_only = [key for key in _CODE_ONLY_OPTIONS if key in (options or {})]
            if code_only:
                raise ValueError(
                    f"Variable {name!r} in {scope_id!r} uses {', '.join(code_only)}, "
                    "which cannot be expressed in a scenario"
                )
        if variables:
            define_variable(scope, variables)

    for write in data.get("writes", []):
        target = scopes.get(write.get("scope"))
        if target is None:
            raise ValueError(f"Write targets unknown scope {write.get('scope')!r}")
        target[write["name"]] = write.get("value")

    for scope_id in data.get("dispose", []):
        if scope_id not in scopes:
            raise ValueError(f"Cannot dispose unknown scope {scope_id!r}")
        dispose_scope(scopes[scope_id])

    return roots, scopes


def parse_args(args):
    argp = argparse.ArgumentParser(description="Inspect a scope variable scenario")

    argp.add_argument("scenario", help="Path to a JSON scenario (or inline JSON)")
    argp.add_argument(
        "--production",
        action="store_true",
        help="Build the scenario without development bookkeeping",
    )
    argp.add_argument("--json", action="store_true", help="Print the scope tree as JSON")
    argp.add_argument(
        "--usage", action="store_true", help="Include the usage graph in JSON output"
    )
    argp.add_argument("--leaks", action="store_true", help="Report disposed scopes still in use")
    argp.add_argument("--dot", action="store_true", help="Print a Graphviz DOT rendering")
    argp.add_argument(
        "--viz",
        metavar="OUTPUT",
        help="Export a Graphviz rendering (format from the file suffix)",
    )
    argp.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging threshold for runtime diagnostics",
    )

    return argp.parse_args(args)


def main(args=None):
    params = parse_args(sys.argv[1:] if args is None else args)
    logging.basicConfig(level=params.log_level, format="%(levelname)s %(name)s: %(message)s")

    previous = set_development_mode(not params.production)
    try:
        try:
            roots, _ = build_scenario(load_scenario(params.scenario))
        except (DeclarationError, ScopeDisposedError, ValueError, TypeError) as exc:
            print(f"  ✗ {exc}", file=sys.stderr)
            return 2

        if params.json:
            payload = {"scopes": [scope_to_dict(root) for root in roots]}
            if params.usage:
                payload["usage"] = [
                    usage_graph_to_dict(build_usage_digraph(root)) for root in roots
                ]
            print(json.dumps(payload, indent=2))
        else:
            for root in roots:
                print_scopes(root)

        if params.leaks:
            leaks = find_leaks()
            print("\nLeak check:")
            if not leaks:
                print("  ✓ No disposed scope is still referenced")
            for leak in leaks:
                print("  ✗", leak.describe())

        if params.dot:
            for root in roots:
                print(build_graphviz(root).to_string())
        if params.viz:
            for index, root in enumerate(roots):
                output = Path(params.viz)
                if index:
                    output = output.with_name(f"{output.stem}_{index}{output.suffix}")
                path = export_graphviz(root, output)
                print(f"  ✓ Graphviz visualization exported → {path}")
        return 0
    finally:
        set_development_mode(previous)


__all__ = [
    "build_scenario",
    "load_scenario",
    "main",
    "parse_args",
]


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main(sys.argv[1:]))
