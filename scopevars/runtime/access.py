"""Read/write dispatch over the three cell kinds."""

from __future__ import annotations

import logging
from typing import Any

from .core import ComputedCell, InheritedCell, ValueCell, VariableDescriptor
from .debug import is_development_mode
from .inherit import read_fallback, resolve_inherited, write_fallback
from .revision import bump_revision
from .tracking import get_tracker, untracked

logger = logging.getLogger(__name__)


def _has_changed(old: Any, new: Any) -> bool:
    if old is new:
        return False
    try:
        return bool(old != new)
    except (TypeError, ValueError):
        return True


def read_variable(descriptor: VariableDescriptor) -> Any:
    """Register a dependency on ``descriptor`` and return its current value."""

    get_tracker().track_read(descriptor.revision)
    cell = descriptor.cell
    if isinstance(cell, ValueCell):
        return cell.value
    if isinstance(cell, ComputedCell):
        return cell.memo.get()
    if isinstance(cell, InheritedCell):
        return read_inherited(descriptor)
    raise TypeError(f"Unknown cell for {descriptor.name!r}: {cell!r}")


def write_variable(descriptor: VariableDescriptor, value: Any) -> None:
    """Store ``value`` through ``descriptor`` and notify its observers.

    Writes to a computed variable without a setter have no effect; in
    development mode they are reported as warnings.
    """

    cell = descriptor.cell
    if isinstance(cell, ValueCell):
        if not _has_changed(cell.value, value):
            return
        cell.value = value
        bump_revision(descriptor.revision)
        return
    if isinstance(cell, ComputedCell):
        if cell.setter is None:
            if is_development_mode():
                logger.warning(
                    "Write to read-only variable %r in %r ignored",
                    descriptor.name,
                    descriptor.scope,
                )
            return
        cell.setter(value)
        return
    if isinstance(cell, InheritedCell):
        write_inherited(descriptor, value)
        return
    raise TypeError(f"Unknown cell for {descriptor.name!r}: {cell!r}")


def read_inherited(descriptor: VariableDescriptor) -> Any:
    target = resolve_inherited(descriptor)
    if target is None:
        return read_fallback(descriptor)
    return read_variable(target)


def write_inherited(descriptor: VariableDescriptor, value: Any) -> None:
    """Forward ``value`` to the resolved source, or keep it locally when there is none."""

    with untracked():
        target = resolve_inherited(descriptor)
    if target is None:
        write_fallback(descriptor, value)
    else:
        write_variable(target, value)


__all__ = [
    "read_inherited",
    "read_variable",
    "write_inherited",
    "write_variable",
]
