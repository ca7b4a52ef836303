"""Core data structures: cells, descriptors and descriptor tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Hashable, Iterator, Optional

from ..constants import VISIBILITY_ALIASED, VISIBILITY_PRIVATE, VISIBILITY_PUBLIC
from .tracking import Computed, Revision

if TYPE_CHECKING:  # pragma: no cover - only for typing
    from .scope import Scope


class DeclarationError(ValueError):
    """Raised when a variable declaration is structurally invalid."""


class ScopeDisposedError(RuntimeError):
    """Raised in development mode when a disposed scope is used."""


class _Missing:
    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


@dataclass(eq=False)
class ValueCell:
    """Mutable slot holding the variable's value."""

    kind: ClassVar[str] = "value"

    value: Any = None
    shallow: bool = False


@dataclass(eq=False)
class ComputedCell:
    """Derived value; ``memo`` is attached once the descriptor exists."""

    kind: ClassVar[str] = "computed"

    getter: Optional[Callable[[], Any]] = None
    setter: Optional[Callable[[Any], None]] = None
    memo: Optional[Computed] = field(default=None, repr=False)

    @property
    def writable(self) -> bool:
        return self.setter is not None


@dataclass(eq=False)
class InheritedCell:
    """Indirection resolved by walking the ancestors of the owning scope."""

    kind: ClassVar[str] = "inherited"

    source: Hashable
    default: Any = MISSING
    default_initializer: Optional[Callable[["Scope"], Any]] = None
    fallback_ready: bool = field(default=False, repr=False)
    fallback_value: Any = field(default=None, repr=False)


Cell = ValueCell | ComputedCell | InheritedCell


@dataclass(eq=False)
class DebugInfo:
    """Development-mode bookkeeping attached to a descriptor."""

    name: Hashable
    expose_as: Optional[Hashable]
    scope: "Scope"
    options: Any = None
    used_by: set = field(default_factory=set)
    inherited_by: set = field(default_factory=set)
    inherited: Optional["VariableDescriptor"] = None
    source: str = ""


class VariableDescriptor:
    """A declared variable: a cell, its exposure, and its revision counter."""

    def __init__(
        self,
        name: Hashable,
        cell: Cell,
        scope: "Scope",
        expose_as: Optional[Hashable],
        revision: Revision,
    ):
        self.name = name
        self.cell = cell
        self.scope = scope
        self.expose_as = expose_as
        self.revision = revision
        self.debug: Optional[DebugInfo] = None

    @property
    def kind(self) -> str:
        return self.cell.kind

    @property
    def visibility(self) -> str:
        if self.expose_as is None:
            return VISIBILITY_PRIVATE
        if self.expose_as == self.name:
            return VISIBILITY_PUBLIC
        return VISIBILITY_ALIASED

    @property
    def value(self) -> Any:
        from .access import read_variable

        return read_variable(self)

    @value.setter
    def value(self, new_value: Any) -> None:
        from .access import write_variable

        write_variable(self, new_value)

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        exposure = "" if self.expose_as in (None, self.name) else f" as {self.expose_as!r}"
        return f"<{self.kind} {self.name!r}{exposure} @{self.scope!r} [{self.visibility}]>"


class DescriptorTable:
    """Name → descriptor mapping that falls back to a parent table on a miss.

    The fallback is an explicit walk over ``parent`` links; nothing is copied
    or memoized, so shadowing and re-parenting are always reflected.
    """

    def __init__(self, scope: "Scope", kind: str, parent: Optional["DescriptorTable"] = None):
        self.scope = scope
        self.kind = kind
        self.parent = parent
        self.own: dict[Hashable, VariableDescriptor] = {}

    def resolve(self, name: Hashable) -> Optional[VariableDescriptor]:
        table: Optional[DescriptorTable] = self
        while table is not None:
            descriptor = table.own.get(name)
            if descriptor is not None:
                return descriptor
            table = table.parent
        return None

    def chain(self) -> Iterator["DescriptorTable"]:
        table: Optional[DescriptorTable] = self
        while table is not None:
            yield table
            table = table.parent

    def visible(self) -> dict[Hashable, VariableDescriptor]:
        """Effective mapping for this table, nearest definition first."""

        result: dict[Hashable, VariableDescriptor] = {}
        for table in self.chain():
            for name, descriptor in table.own.items():
                result.setdefault(name, descriptor)
        return result

    def rebind(self, parent: Optional["DescriptorTable"]) -> None:
        self.parent = parent

    def __contains__(self, name: Hashable) -> bool:
        return self.resolve(name) is not None

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"<{self.kind} table of {self.scope!r}>"


__all__ = [
    "Cell",
    "ComputedCell",
    "DebugInfo",
    "DeclarationError",
    "DescriptorTable",
    "InheritedCell",
    "MISSING",
    "ScopeDisposedError",
    "ValueCell",
    "VariableDescriptor",
]
