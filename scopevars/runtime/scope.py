"""Scope nodes and their lifecycle."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Hashable, Iterator, Optional

from ..constants import TABLE_KINDS
from .access import read_variable, write_variable
from .core import DescriptorTable, VariableDescriptor
from .debug import ensure_alive, get_usage_graph, is_development_mode
from .declare import define_variable
from .revision import RevisionLedger
from .tracking import batch, untracked

logger = logging.getLogger(__name__)

_scope_ids = itertools.count(1)

# Called as hook(scope, parent) after every create_scope().
SCOPE_SETUP_HOOKS: list[Callable[["Scope", Optional["Scope"]], None]] = []

_RESERVED = frozenset(
    (
        "self",
        "parent",
        "_id",
        "_label",
        "_self_table",
        "_gateway",
        "_ledger",
        "_children",
        "_disposed",
    )
)


class Scope:
    """A node of the scope tree; declared variables are its attributes.

    ``scope.name`` and ``scope["name"]`` read through the scope's own table
    and then the gateway tables of its ancestors.  Only ``self`` and
    ``parent`` are reserved; everything else is a variable.
    """

    __slots__ = tuple(sorted(_RESERVED)) + ("__weakref__",)

    def __init__(self, parent: Optional["Scope"] = None, *, label: Optional[str] = None):
        set_slot = object.__setattr__
        set_slot(self, "self", self)
        set_slot(self, "parent", parent)
        set_slot(self, "_id", next(_scope_ids))
        set_slot(self, "_label", label)
        fallback = parent._gateway if parent is not None else None
        set_slot(self, "_self_table", DescriptorTable(self, TABLE_KINDS[0], fallback))
        set_slot(self, "_gateway", DescriptorTable(self, TABLE_KINDS[1], fallback))
        set_slot(self, "_ledger", RevisionLedger(self))
        set_slot(self, "_children", [])
        set_slot(self, "_disposed", False)
        if parent is not None:
            parent._children.append(self)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name in _RESERVED:
            raise AttributeError(name)
        return read_scope_variable(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _RESERVED:
            raise AttributeError(f"{name!r} is managed by the scope runtime")
        write_scope_variable(self, name, value)

    def __delattr__(self, name: str) -> None:
        raise AttributeError("Scope variables cannot be deleted; redeclare them instead")

    def __getitem__(self, name: Hashable) -> Any:
        return read_scope_variable(self, name)

    def __setitem__(self, name: Hashable, value: Any) -> None:
        write_scope_variable(self, name, value)

    def __contains__(self, name: Hashable) -> bool:
        return _lookup(self, name) is not None

    def __iter__(self) -> Iterator[Hashable]:
        return iter(list_variables(self))

    def __repr__(self) -> str:
        label = self._label or f"#{self._id}"
        suffix = " disposed" if self._disposed else ""
        return f"Scope({label}{suffix})"


def _lookup(scope: Scope, name: Hashable) -> Optional[VariableDescriptor]:
    """Walk ``scope``'s table chain, tracking the key set of every miss."""

    graph = get_usage_graph()
    table: Optional[DescriptorTable] = scope._self_table
    while table is not None:
        owner = table.scope
        if owner is not scope and owner._disposed:
            graph.report_stale(scope, owner, name)
        descriptor = table.own.get(name)
        if descriptor is not None:
            return descriptor
        owner._ledger.track_keys()
        table = table.parent
    return None


def read_scope_variable(scope: Scope, name: Hashable) -> Any:
    """Read ``name`` as seen from ``scope``; undeclared names read as ``None``."""

    ensure_alive(scope, f"read {name!r} from")
    descriptor = _lookup(scope, name)
    if descriptor is None:
        return None
    return read_variable(descriptor)


def write_scope_variable(scope: Scope, name: Hashable, value: Any) -> None:
    """Write ``name`` as seen from ``scope``.

    Assigning a name no table resolves declares it as a private value in
    ``scope`` (reported in development mode).
    """

    ensure_alive(scope, f"write {name!r} to")
    with untracked():
        descriptor = _lookup(scope, name)
    if descriptor is None:
        if is_development_mode():
            logger.warning(
                "Assigning undeclared variable %r in %r; declaring it private", name, scope
            )
        define_variable(scope, name, {"value": value, "private": True})
        return
    write_variable(descriptor, value)


def create_scope(parent: Optional[Scope] = None, *, label: Optional[str] = None) -> Scope:
    """Create a scope whose tables fall back to ``parent``'s gateway table."""

    if parent is not None:
        if not isinstance(parent, Scope):
            raise TypeError(f"Parent must be a Scope, got {type(parent).__name__}")
        ensure_alive(parent, "create a child of")
    scope = Scope(parent, label=label)
    get_usage_graph().on_create(scope)
    for hook in list(SCOPE_SETUP_HOOKS):
        hook(scope, parent)
    logger.debug("created %r under %r", scope, parent)
    return scope


def dispose_scope(scope: Scope) -> None:
    """Tear down ``scope``; children are not disposed and must be handled first."""

    if scope._disposed:
        logger.debug("%r already disposed", scope)
        return
    attached = [child for child in scope._children if not child._disposed]
    if attached and is_development_mode():
        logger.warning(
            "Disposing %r while %d child scope(s) are still attached", scope, len(attached)
        )
    object.__setattr__(scope, "_disposed", True)
    get_usage_graph().on_dispose(scope)
    for descriptor in scope._self_table.own.values():
        memo = getattr(descriptor.cell, "memo", None)
        if memo is not None:
            memo.stop()
    if scope.parent is not None and scope in scope.parent._children:
        scope.parent._children.remove(scope)
    logger.debug("disposed %r", scope)


def reparent_scope(scope: Scope, new_parent: Optional[Scope]) -> None:
    """Move ``scope`` under ``new_parent``; inherited variables re-resolve lazily."""

    ensure_alive(scope, "re-parent")
    if new_parent is not None:
        ensure_alive(new_parent, "attach to")
        ancestor: Optional[Scope] = new_parent
        while ancestor is not None:
            if ancestor is scope:
                raise ValueError(f"Cannot attach {scope!r} below its own descendant {new_parent!r}")
            ancestor = ancestor.parent
    old_parent = scope.parent
    if old_parent is new_parent:
        return
    if old_parent is not None and scope in old_parent._children:
        old_parent._children.remove(scope)
    object.__setattr__(scope, "parent", new_parent)
    if new_parent is not None:
        new_parent._children.append(scope)
    fallback = new_parent._gateway if new_parent is not None else None
    scope._self_table.rebind(fallback)
    scope._gateway.rebind(fallback)
    get_usage_graph().on_reparent(scope)
    with batch():
        for member in iter_scopes(scope):
            member._ledger.bump_keys()
    logger.debug("re-parented %r from %r to %r", scope, old_parent, new_parent)


def iter_scopes(scope: Scope) -> Iterator[Scope]:
    yield scope
    for child in list(scope._children):
        yield from iter_scopes(child)


def descriptors(scope: Scope) -> dict:
    """Every variable declared directly in ``scope``, private ones included."""

    return dict(scope._self_table.own)


def gateway_descriptors(scope: Scope) -> dict:
    """Variables ``scope`` exposes to descendants, keyed by exposure name."""

    return dict(scope._gateway.own)


def scope_children(scope: Scope) -> list:
    return list(scope._children)


def scope_label(scope: Scope) -> str:
    return scope._label or f"#{scope._id}"


def is_disposed(scope: Scope) -> bool:
    return scope._disposed


def get_descriptor(scope: Scope, name: Hashable) -> Optional[VariableDescriptor]:
    with untracked():
        return _lookup(scope, name)


def list_variables(scope: Scope) -> list:
    """Names readable from ``scope``; tracks every key-set counter on the way."""

    for table in scope._self_table.chain():
        table.scope._ledger.track_keys()
    return list(scope._self_table.visible())


def revision_of(scope: Scope, name: Hashable) -> int:
    return scope._ledger.value(name)


__all__ = [
    "SCOPE_SETUP_HOOKS",
    "Scope",
    "create_scope",
    "descriptors",
    "dispose_scope",
    "gateway_descriptors",
    "get_descriptor",
    "is_disposed",
    "iter_scopes",
    "list_variables",
    "read_scope_variable",
    "reparent_scope",
    "revision_of",
    "scope_children",
    "scope_label",
    "write_scope_variable",
]
