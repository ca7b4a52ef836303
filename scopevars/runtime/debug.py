"""Development-mode usage graph.

Tracks which descriptor tables can currently see a descriptor (``used_by``)
and which inherited variables resolve to it (``inherited_by``).  The graph
is injectable: production builds install ``NullUsageGraph`` and pay nothing.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Hashable, Iterable, Optional

from .. import constants
from .core import DebugInfo, InheritedCell, ScopeDisposedError, VariableDescriptor

if TYPE_CHECKING:  # pragma: no cover - only for typing
    from .core import DescriptorTable
    from .scope import Scope

logger = logging.getLogger(__name__)


@dataclass
class Leak:
    """A disposed scope that is still referenced by live scopes."""

    kind: str
    scope: "Scope"
    descriptor: Optional[VariableDescriptor] = None
    holders: list = field(default_factory=list)

    def describe(self) -> str:
        if self.kind == "orphan":
            return f"{self.scope!r} was disposed while {len(self.holders)} child scope(s) stay attached"
        names = ", ".join(repr(h) for h in self.holders)
        return f"{self.descriptor!r} of disposed {self.scope!r} is still {self.kind} {names}"


class NullUsageGraph:
    """No-op graph used outside development mode."""

    enabled = False

    def debug_info(self, descriptor, options) -> Optional[DebugInfo]:
        return None

    def on_create(self, scope: "Scope") -> None:
        pass

    def on_declare(self, scope: "Scope", declared: Iterable[tuple]) -> None:
        pass

    def on_dispose(self, scope: "Scope") -> None:
        pass

    def on_reparent(self, scope: "Scope") -> None:
        pass

    def link(self, descriptor: VariableDescriptor, target: Optional[VariableDescriptor]) -> None:
        pass

    def unlink(self, descriptor: VariableDescriptor) -> None:
        pass

    def report_stale(self, reader: "Scope", disposed: "Scope", name: Hashable) -> None:
        pass

    def inheriting(self, scope: "Scope") -> set:
        return set()

    def find_leaks(self) -> list[Leak]:
        return []


class UsageGraph(NullUsageGraph):
    """Maintains ``used_by``/``inherited_by`` alongside every scope mutation."""

    enabled = True

    def __init__(self) -> None:
        self._uses: dict["DescriptorTable", set[VariableDescriptor]] = {}
        self._inheriting: dict["Scope", set[VariableDescriptor]] = {}
        self._scopes: "weakref.WeakSet[Scope]" = weakref.WeakSet()
        self._stale_warned: "weakref.WeakKeyDictionary[Scope, weakref.WeakSet[Scope]]" = (
            weakref.WeakKeyDictionary()
        )

    def debug_info(self, descriptor, options) -> DebugInfo:
        return DebugInfo(
            name=descriptor.name,
            expose_as=descriptor.expose_as,
            scope=descriptor.scope,
            options=options,
            source=getattr(options, "source", "") or "",
        )

    def _refresh_table(self, table: "DescriptorTable") -> None:
        for descriptor in self._uses.pop(table, ()):
            if descriptor.debug is not None:
                descriptor.debug.used_by.discard(table)
        if table.scope._disposed:
            return
        used = set(table.visible().values())
        for descriptor in used:
            if descriptor.debug is not None:
                descriptor.debug.used_by.add(table)
        self._uses[table] = used

    def _drop_table(self, table: "DescriptorTable") -> None:
        for descriptor in self._uses.pop(table, ()):
            if descriptor.debug is not None:
                descriptor.debug.used_by.discard(table)

    def _refresh_subtree(self, scope: "Scope") -> None:
        pending = [scope]
        while pending:
            current = pending.pop()
            if current._disposed:
                continue
            self._refresh_table(current._self_table)
            self._refresh_table(current._gateway)
            pending.extend(current._children)

    def on_create(self, scope: "Scope") -> None:
        self._scopes.add(scope)
        self._refresh_table(scope._self_table)
        self._refresh_table(scope._gateway)

    def on_declare(self, scope: "Scope", declared: Iterable[tuple]) -> None:
        inheriting = self._inheriting.setdefault(scope, set())
        for descriptor, previous in declared:
            if previous is not None and previous is not descriptor:
                self.unlink(previous)
                inheriting.discard(previous)
                if previous.debug is not None:
                    for inheritor in list(previous.debug.inherited_by):
                        if inheritor.debug is not None:
                            inheritor.debug.inherited = None
                    previous.debug.inherited_by.clear()
            if isinstance(descriptor.cell, InheritedCell):
                inheriting.add(descriptor)
        self._refresh_subtree(scope)

    def on_dispose(self, scope: "Scope") -> None:
        self._stale_warned.pop(scope, None)
        self._drop_table(scope._self_table)
        self._drop_table(scope._gateway)
        for descriptor in self._inheriting.pop(scope, ()):
            self.unlink(descriptor)

    def on_reparent(self, scope: "Scope") -> None:
        self._refresh_subtree(scope)

    def link(self, descriptor: VariableDescriptor, target: Optional[VariableDescriptor]) -> None:
        info = descriptor.debug
        if info is None:
            return
        current = info.inherited
        if current is target:
            return
        if current is not None and current.debug is not None:
            current.debug.inherited_by.discard(descriptor)
        info.inherited = target
        if target is not None and target.debug is not None:
            target.debug.inherited_by.add(descriptor)

    def unlink(self, descriptor: VariableDescriptor) -> None:
        self.link(descriptor, None)

    def report_stale(self, reader: "Scope", disposed: "Scope", name: Hashable) -> None:
        warned = self._stale_warned.setdefault(reader, weakref.WeakSet())
        if disposed in warned:
            return
        warned.add(disposed)
        logger.warning(
            "%r reads %r through disposed ancestor %r", reader, name, disposed
        )

    def inheriting(self, scope: "Scope") -> set:
        return set(self._inheriting.get(scope, ()))

    def find_leaks(self) -> list[Leak]:
        leaks: list[Leak] = []
        for scope in list(self._scopes):
            if not scope._disposed:
                continue
            attached = [child for child in scope._children if not child._disposed]
            if attached:
                leaks.append(Leak("orphan", scope, holders=attached))
            for descriptor in scope._self_table.own.values():
                info = descriptor.debug
                if info is None:
                    continue
                users = [t for t in info.used_by if not t.scope._disposed]
                if users:
                    leaks.append(Leak("used by", scope, descriptor, users))
                inheritors = [d for d in info.inherited_by if not d.scope._disposed]
                if inheritors:
                    leaks.append(Leak("inherited by", scope, descriptor, inheritors))
        return leaks


_graph: NullUsageGraph = UsageGraph() if constants.DEVELOPMENT_MODE else NullUsageGraph()


def get_usage_graph() -> NullUsageGraph:
    return _graph


def is_development_mode() -> bool:
    return _graph.enabled


def set_development_mode(enabled: bool) -> bool:
    """Switch development bookkeeping on or off; returns the previous flag.

    Scopes created before the switch keep whatever debug info they had.
    """

    global _graph
    previous = _graph.enabled
    if bool(enabled) != previous:
        _graph = UsageGraph() if enabled else NullUsageGraph()
        logger.debug("development mode %s", "enabled" if enabled else "disabled")
    return previous


def set_usage_graph(graph: NullUsageGraph) -> NullUsageGraph:
    """Install ``graph`` directly and return the previous one."""

    global _graph
    if not isinstance(graph, NullUsageGraph):
        raise TypeError("Usage graph must derive from NullUsageGraph")
    previous = _graph
    _graph = graph
    return previous


def ensure_alive(scope: "Scope", action: str) -> None:
    if scope._disposed and _graph.enabled:
        raise ScopeDisposedError(f"Cannot {action} disposed {scope!r}")


def used_by(descriptor: VariableDescriptor) -> set:
    """Tables that currently resolve to ``descriptor`` (development mode only)."""

    if descriptor.debug is None:
        return set()
    return set(descriptor.debug.used_by)


def inherited_by(descriptor: VariableDescriptor) -> set:
    """Inherited variables currently resolving to ``descriptor``."""

    if descriptor.debug is None:
        return set()
    return set(descriptor.debug.inherited_by)


def inherited_target(descriptor: VariableDescriptor) -> Optional[VariableDescriptor]:
    if descriptor.debug is None:
        return None
    return descriptor.debug.inherited


def find_leaks() -> list[Leak]:
    return _graph.find_leaks()


__all__ = [
    "Leak",
    "NullUsageGraph",
    "UsageGraph",
    "ensure_alive",
    "find_leaks",
    "get_usage_graph",
    "inherited_by",
    "inherited_target",
    "is_development_mode",
    "set_development_mode",
    "set_usage_graph",
    "used_by",
]
