"""Introspection and export utilities for scope trees."""
from __future__ import annotations

from pathlib import Path
from typing import Any

import networkx as nx
import pydot

from ..constants import CELL_COLORS, PRIVATE_COLOR, VISIBILITY_ALIASED, VISIBILITY_PRIVATE
from .core import ComputedCell, InheritedCell, VariableDescriptor
from .inherit import resolve_inherited
from .scope import Scope, iter_scopes, scope_label
from .tracking import untracked


def _peek(descriptor: VariableDescriptor) -> Any:
    cell = descriptor.cell
    if descriptor.scope._disposed and isinstance(cell, ComputedCell):
        return cell.memo.peek()
    with untracked():
        return descriptor.value


def _json_safe(value):
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    return repr(value)


def _current_target(descriptor: VariableDescriptor):
    if not isinstance(descriptor.cell, InheritedCell):
        return None
    with untracked():
        return resolve_inherited(descriptor)


def describe_descriptor(descriptor: VariableDescriptor) -> str:
    """One-line summary such as ``[value, exposed as 'alias']``."""

    parts = [descriptor.kind]
    cell = descriptor.cell
    if isinstance(cell, ComputedCell) and not cell.writable:
        parts.append("read-only")
    if isinstance(cell, InheritedCell):
        parts.append(f"<- {cell.source!r}")
    if descriptor.visibility == VISIBILITY_PRIVATE:
        parts.append("private")
    elif descriptor.visibility == VISIBILITY_ALIASED:
        parts.append(f"exposed as {descriptor.expose_as!r}")
    else:
        parts.append("public")
    return "[" + ", ".join(parts) + "]"


def explain_inheritance(descriptor: VariableDescriptor) -> list[VariableDescriptor]:
    """Chain of descriptors an inherited variable currently resolves through."""

    chain = [descriptor]
    current = descriptor
    while isinstance(current.cell, InheritedCell):
        with untracked():
            target = resolve_inherited(current)
        if target is None or target in chain:
            break
        chain.append(target)
        current = target
    return chain


def print_scopes(scope: Scope, indent=0):
    """Print the tree below ``scope`` with resolved values.

    Disposed scopes are detached from their parent, so only the starting
    scope itself can be shown as disposed.
    """

    pad = "  " * indent
    print(f"{pad}{scope}")
    for name, descriptor in scope._self_table.own.items():
        print(f"{pad}  {name} = {_peek(descriptor)!r}  {describe_descriptor(descriptor)}")
    for child in scope._children:
        print_scopes(child, indent + 1)


def scope_to_dict(scope: Scope):
    """Recursively convert a scope tree to a JSON-safe dict.

    ``disposed`` can only be true for the starting scope; disposing a child
    removes it from its parent's children.
    """
    return {
        "label": scope_label(scope),
        "disposed": scope._disposed,
        "variables": [
            {
                "name": _json_safe(name),
                "kind": d.kind,
                "visibility": d.visibility,
                "expose_as": _json_safe(d.expose_as),
                "value": _json_safe(_peek(d)),
                "revision": d.revision.value,
                "inherits": (
                    _json_safe(d.cell.source) if isinstance(d.cell, InheritedCell) else None
                ),
            }
            for name, d in scope._self_table.own.items()
        ],
        "children": [scope_to_dict(child) for child in scope._children],
    }


def _scope_node(scope: Scope) -> str:
    return f"scope_{scope._id}"


def build_usage_digraph(root: Scope) -> nx.MultiDiGraph:
    """Graph of scopes and descriptors with parent/declares/exposes/uses/inherits edges.

    ``uses`` edges are only present in development mode, where descriptors
    carry their ``used_by`` sets.
    """

    graph = nx.MultiDiGraph()
    var_nodes: dict[VariableDescriptor, str] = {}

    for scope in iter_scopes(root):
        node = _scope_node(scope)
        graph.add_node(node, kind="scope", label=scope_label(scope), disposed=scope._disposed)
        if scope.parent is not None and scope is not root:
            graph.add_edge(_scope_node(scope.parent), node, kind="parent")
        for index, (name, descriptor) in enumerate(scope._self_table.own.items()):
            var_node = f"var_{scope._id}_{index}"
            var_nodes[descriptor] = var_node
            graph.add_node(
                var_node,
                kind=descriptor.kind,
                label=str(name),
                visibility=descriptor.visibility,
                revision=descriptor.revision.value,
            )
            graph.add_edge(node, var_node, kind="declares")
            if descriptor.expose_as is not None:
                graph.add_edge(node, var_node, kind="exposes", name=str(descriptor.expose_as))

    for descriptor, var_node in var_nodes.items():
        if descriptor.debug is not None:
            for table in descriptor.debug.used_by:
                user = _scope_node(table.scope)
                if user in graph:
                    graph.add_edge(user, var_node, kind="uses", table=table.kind)
        target = _current_target(descriptor)
        if target is not None and target in var_nodes:
            graph.add_edge(var_node, var_nodes[target], kind="inherits")
    return graph


def usage_graph_to_dict(graph: nx.MultiDiGraph) -> dict:
    return {
        "nodes": [{"id": node, **data} for node, data in graph.nodes(data=True)],
        "edges": [
            {"source": source, "target": target, **data}
            for source, target, data in graph.edges(data=True)
        ],
    }


def inheritance_sources(graph: nx.MultiDiGraph, var_node: str) -> list[str]:
    """Descriptor nodes reachable from ``var_node`` through ``inherits`` edges."""

    inherits = nx.DiGraph()
    inherits.add_edges_from(
        (u, v) for u, v, kind in graph.edges(data="kind") if kind == "inherits"
    )
    if var_node not in inherits:
        return []
    return list(nx.dfs_preorder_nodes(inherits, var_node))[1:]


def build_graphviz(root: Scope) -> pydot.Dot:
    """Graphviz rendering with one cluster per scope and dashed inherit edges."""

    usage = build_usage_digraph(root)
    graph = pydot.Dot(
        "scopevars",
        graph_type="digraph",
        rankdir="TB",
        fontname="Helvetica",
    )

    def build_cluster(scope):
        cluster = pydot.Cluster(
            f"scope_{scope._id}",
            label=repr(scope),
            color="#7f8c8d",
            fontname="Helvetica",
            fontsize="10",
            style="rounded,dashed" if scope._disposed else "rounded",
        )
        for node, data in usage.nodes(data=True):
            if not node.startswith(f"var_{scope._id}_"):
                continue
            color = CELL_COLORS.get(data["kind"], PRIVATE_COLOR)
            if data["visibility"] == VISIBILITY_PRIVATE:
                color = PRIVATE_COLOR
            cluster.add_node(
                pydot.Node(
                    node,
                    label=f"{data['label']}\\n[{data['kind']}]",
                    shape="box",
                    style="filled",
                    fillcolor=color,
                    fontname="Helvetica",
                )
            )
        for child in scope._children:
            cluster.add_subgraph(build_cluster(child))
        return cluster

    graph.add_subgraph(build_cluster(root))

    for source, target, data in usage.edges(data=True):
        if data["kind"] == "inherits":
            graph.add_edge(
                pydot.Edge(source, target, style="dashed", color="#1565C0", arrowsize="0.8")
            )
    return graph


def export_graphviz(root: Scope, output_path):
    """Write the scope tree as DOT (``.dot``) or any format Graphviz renders."""

    graph = build_graphviz(root)
    output_path = Path(output_path)
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = output_path.suffix.lstrip(".").lower() or "svg"
    if suffix in ("dot", "gv"):
        output_path.write_text(graph.to_string(), encoding="utf-8")
    else:
        graph.write(str(output_path), format=suffix)
    return output_path


__all__ = [
    "build_graphviz",
    "build_usage_digraph",
    "describe_descriptor",
    "explain_inheritance",
    "export_graphviz",
    "inheritance_sources",
    "print_scopes",
    "scope_to_dict",
    "usage_graph_to_dict",
]
