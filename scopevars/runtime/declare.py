"""Variable declaration API used by generated component setup code."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Hashable, Mapping, Optional

from .core import (
    MISSING,
    ComputedCell,
    DeclarationError,
    InheritedCell,
    ValueCell,
    VariableDescriptor,
)
from .debug import ensure_alive, get_usage_graph
from .inherit import resolve_inherited
from .revision import bump_revision
from .tracking import Computed, batch, untracked

if TYPE_CHECKING:  # pragma: no cover - only for typing
    from .scope import Scope

logger = logging.getLogger(__name__)

_OPTION_KEYS = {
    "value",
    "shallow",
    "get",
    "set",
    "inherited",
    "default",
    "default_initializer",
    "defaultInitializer",
    "private",
    "expose_as",
    "exposeAs",
    "source",
}


@dataclass
class VariableOptions:
    """Validated options for one declaration."""

    value: Any = MISSING
    shallow: bool = False
    get: Optional[Callable[[], Any]] = None
    set: Optional[Callable[[Any], None]] = None
    inherited: Any = MISSING
    default: Any = MISSING
    default_initializer: Optional[Callable[["Scope"], Any]] = None
    private: bool = False
    expose_as: Optional[Hashable] = None
    source: str = ""

    def __post_init__(self):
        shapes = []
        if self.value is not MISSING:
            shapes.append("value")
        if self.get is not None or self.set is not None:
            shapes.append("get/set")
        if self.inherited is not MISSING:
            shapes.append("inherited")
        if len(shapes) > 1:
            raise DeclarationError(
                f"Variable options mix incompatible shapes: {', '.join(shapes)}"
            )
        if self.private and self.expose_as is not None:
            raise DeclarationError("'private' cannot be combined with 'exposeAs'")
        if self.get is not None and not callable(self.get):
            raise TypeError("'get' must be callable")
        if self.set is not None and not callable(self.set):
            raise TypeError("'set' must be callable")
        if self.inherited is MISSING and (
            self.default is not MISSING or self.default_initializer is not None
        ):
            raise DeclarationError("'default' only applies to inherited variables")
        if self.default_initializer is not None and not callable(self.default_initializer):
            raise TypeError("'defaultInitializer' must be callable")
        self.private = bool(self.private)
        self.shallow = bool(self.shallow)

    @property
    def shape(self) -> str:
        if self.get is not None or self.set is not None:
            return "computed"
        if self.inherited is not MISSING:
            return "inherited"
        return "value"

    def exposure(self, name: Hashable) -> Optional[Hashable]:
        if self.private:
            return None
        return name if self.expose_as is None else self.expose_as

    @classmethod
    def from_dict(cls, data):
        if isinstance(data, cls):
            return data
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise TypeError("Variable options must be built from a mapping")
        unknown = set(data) - _OPTION_KEYS
        if unknown:
            raise DeclarationError(
                f"Unknown variable option(s): {', '.join(sorted(map(str, unknown)))}"
            )
        expose_as = data.get("expose_as")
        if expose_as is None:
            expose_as = data.get("exposeAs")
        initializer = data.get("default_initializer") or data.get("defaultInitializer")
        return cls(
            value=data.get("value", MISSING),
            shallow=data.get("shallow", False),
            get=data.get("get"),
            set=data.get("set"),
            inherited=data.get("inherited", MISSING),
            default=data.get("default", MISSING),
            default_initializer=initializer,
            private=data.get("private", False),
            expose_as=expose_as,
            source=data.get("source") or "",
        )


def _none_getter():
    return None


def _build_cell(options: VariableOptions):
    shape = options.shape
    if shape == "computed":
        return ComputedCell(options.get, options.set)
    if shape == "inherited":
        return InheritedCell(options.inherited, options.default, options.default_initializer)
    return ValueCell(None if options.value is MISSING else options.value, options.shallow)


def _attach_memo(scope: "Scope", descriptor: VariableDescriptor) -> None:
    cell = descriptor.cell

    def on_invalidate():
        if scope._self_table.own.get(descriptor.name) is descriptor:
            bump_revision(descriptor.revision)

    cell.memo = Computed(cell.getter or _none_getter, on_invalidate)


def _retire(descriptor: VariableDescriptor) -> None:
    cell = descriptor.cell
    if isinstance(cell, ComputedCell) and cell.memo is not None:
        cell.memo.stop()


def _check_exposures(scope: "Scope", parsed: dict) -> None:
    """Reject two different names competing for one exposure name."""

    claimed: dict = {}
    for name, options in parsed.items():
        exposure = options.exposure(name)
        if exposure is None:
            continue
        if exposure in claimed and claimed[exposure] != name:
            raise DeclarationError(
                f"{name!r} and {claimed[exposure]!r} are both exposed as {exposure!r}"
            )
        claimed[exposure] = name
        holder = scope._gateway.own.get(exposure)
        if holder is None or holder.name == name:
            continue
        # the holder may be released by this same batch
        if holder.name in parsed and parsed[holder.name].exposure(holder.name) != exposure:
            continue
        raise DeclarationError(
            f"{name!r} cannot be exposed as {exposure!r}: already exposed by {holder.name!r} in {scope!r}"
        )


def _define_many(scope: "Scope", declarations: Mapping) -> dict:
    ensure_alive(scope, "declare variables in")
    parsed = {
        name: VariableOptions.from_dict(options) for name, options in declarations.items()
    }
    _check_exposures(scope, parsed)

    graph = get_usage_graph()
    self_table = scope._self_table
    gateway = scope._gateway
    ledger = scope._ledger
    declared = []
    result = {}

    for name, options in parsed.items():
        expose_as = options.exposure(name)
        descriptor = VariableDescriptor(
            name, _build_cell(options), scope, expose_as, ledger.revision(name)
        )
        descriptor.debug = graph.debug_info(descriptor, options)

        previous = self_table.own.get(name)
        if previous is not None:
            logger.debug("redeclaring %r in %r", name, scope)
            if previous.expose_as is not None and previous.expose_as != expose_as:
                if gateway.own.get(previous.expose_as) is previous:
                    del gateway.own[previous.expose_as]
            _retire(previous)

        self_table.own[name] = descriptor
        if expose_as is not None:
            gateway.own[expose_as] = descriptor
        if isinstance(descriptor.cell, ComputedCell):
            _attach_memo(scope, descriptor)

        declared.append((descriptor, previous))
        result[name] = descriptor

    graph.on_declare(scope, declared)

    with batch():
        for name in result:
            ledger.bump(name)
        ledger.bump_keys()

    if graph.enabled:
        # resolve eagerly so inherited_by is populated before the first read
        with untracked():
            for descriptor, _ in declared:
                if isinstance(descriptor.cell, InheritedCell):
                    resolve_inherited(descriptor)
    return result


def define_variable(scope: "Scope", name, options=None):
    """Declare one variable, or many when ``name`` is a ``{name: options}`` mapping.

    The batched form applies every table mutation before bumping any
    revision counter, so observers see a single consistent update.
    Returns the new descriptor, or a dict of descriptors for the batched form.
    """

    if isinstance(name, Mapping):
        if options is not None:
            raise TypeError("Batched declarations take no separate options")
        return _define_many(scope, name)
    return _define_many(scope, {name: options})[name]


define_scope_var = define_variable
define_scope_variable = define_variable


__all__ = [
    "VariableOptions",
    "define_scope_var",
    "define_scope_variable",
    "define_variable",
]
