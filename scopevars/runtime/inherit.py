"""Lazy ancestor lookup for inherited variables."""

from __future__ import annotations

import logging
from typing import Any, Optional

from .core import MISSING, InheritedCell, VariableDescriptor
from .debug import get_usage_graph
from .revision import bump_revision

logger = logging.getLogger(__name__)


def resolve_inherited(descriptor: VariableDescriptor) -> Optional[VariableDescriptor]:
    """Return the nearest ancestor descriptor exposed under the cell's source name.

    The walk starts from the scope's *current* parent on every call, so a
    re-parented scope resolves against its new ancestry.  Every visited
    scope's key-set counter is tracked, so a later exposure anywhere on the
    path notifies readers.
    """

    cell = descriptor.cell
    if not isinstance(cell, InheritedCell):
        raise TypeError(f"{descriptor!r} is not an inherited variable")

    graph = get_usage_graph()
    scope = descriptor.scope
    scope._ledger.track_keys()

    ancestor = scope.parent
    while ancestor is not None:
        ancestor._ledger.track_keys()
        if ancestor._disposed:
            graph.report_stale(scope, ancestor, cell.source)
        target = ancestor._gateway.own.get(cell.source)
        if target is not None:
            graph.link(descriptor, target)
            cell.fallback_ready = False
            return target
        ancestor = ancestor.parent

    if descriptor.debug is not None and descriptor.debug.inherited is not None:
        lost = descriptor.debug.inherited
        logger.warning(
            "%r lost its inherited source %r (previously %r)",
            descriptor,
            cell.source,
            lost,
        )
        graph.unlink(descriptor)
    return None


def _initialize_fallback(descriptor: VariableDescriptor) -> None:
    cell = descriptor.cell
    value = None if cell.default is MISSING else cell.default
    if value is None and cell.default_initializer is not None:
        value = cell.default_initializer(descriptor.scope)
    cell.fallback_value = value
    cell.fallback_ready = True


def read_fallback(descriptor: VariableDescriptor) -> Any:
    """Value used while no ancestor exposes the source name.

    ``default_initializer`` runs once per failed resolution, not per read.
    """

    cell = descriptor.cell
    if not cell.fallback_ready:
        _initialize_fallback(descriptor)
    return cell.fallback_value


def write_fallback(descriptor: VariableDescriptor, value: Any) -> None:
    cell = descriptor.cell
    if cell.fallback_ready and cell.fallback_value is value:
        return
    cell.fallback_value = value
    cell.fallback_ready = True
    bump_revision(descriptor.revision)


__all__ = [
    "read_fallback",
    "resolve_inherited",
    "write_fallback",
]
