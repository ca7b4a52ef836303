"""Dependency tracking primitive consumed by scope variables.

The engine only needs two operations from a reactive runtime: register a
read of a revision counter with whatever derivation is currently running,
and notify the observers of a counter after it was bumped.  ``Tracker``
captures that contract; ``ReactiveTracker`` is the default implementation
built on a context variable holding the running derivation.

``Computed`` derivations are invalidated synchronously so their own
counters bump immediately, while ``Effect`` derivations are deferred until
the outermost ``batch()`` exits.
"""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Any, Callable, Hashable, Iterator, Optional

# The derivation whose reads are currently being collected.
current_derivation: contextvars.ContextVar[Optional["Derivation"]] = contextvars.ContextVar(
    "scopevars_current_derivation", default=None
)


class Revision:
    """A monotonically increasing counter that derivations can observe."""

    __slots__ = ("key", "owner", "value", "observers")

    def __init__(self, key: Hashable, owner: Any = None):
        self.key = key
        self.owner = owner
        self.value = 0
        self.observers: set[Derivation] = set()

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"<Revision {self.key!r}={self.value}>"


class Derivation:
    """Something that re-evaluates when the revisions it read are bumped."""

    def __init__(self) -> None:
        self.dependencies: set[Revision] = set()
        self.active = True

    def _collect(self, fn: Callable[[], Any]) -> Any:
        self._clear_dependencies()
        token = current_derivation.set(self)
        try:
            return fn()
        finally:
            current_derivation.reset(token)

    def _clear_dependencies(self) -> None:
        for revision in self.dependencies:
            revision.observers.discard(self)
        self.dependencies.clear()

    def invalidate(self) -> None:
        raise NotImplementedError

    def stop(self) -> None:
        self._clear_dependencies()
        self.active = False


class Effect(Derivation):
    """Runs ``fn`` and re-runs it (or calls ``scheduler``) when a dependency changes."""

    def __init__(
        self,
        fn: Callable[[], Any],
        scheduler: Optional[Callable[["Effect"], None]] = None,
        *,
        lazy: bool = False,
    ):
        super().__init__()
        self.fn = fn
        self.scheduler = scheduler
        self.runs = 0
        self.last_value: Any = None
        self._running = False
        if not lazy:
            self.run()

    def run(self) -> Any:
        if not self.active:
            return self.fn()
        self.runs += 1
        self._running = True
        try:
            self.last_value = self._collect(self.fn)
        finally:
            self._running = False
        return self.last_value

    def invalidate(self) -> None:
        # an effect never re-triggers itself while it is running
        if not self.active or self._running:
            return
        if self.scheduler is not None:
            self.scheduler(self)
        else:
            self.run()


class Computed(Derivation):
    """Lazily evaluated memo of ``getter``."""

    def __init__(
        self,
        getter: Callable[[], Any],
        on_invalidate: Optional[Callable[[], None]] = None,
    ):
        super().__init__()
        self.getter = getter
        self.on_invalidate = on_invalidate
        self.evaluations = 0
        self._dirty = True
        self._value: Any = None

    @property
    def dirty(self) -> bool:
        return self._dirty

    def peek(self) -> Any:
        """Last computed value, without evaluating or tracking."""
        return self._value

    def get(self) -> Any:
        if not self.active:
            return self.getter()
        if self._dirty:
            self.evaluations += 1
            self._value = self._collect(self.getter)
            self._dirty = False
        return self._value

    def invalidate(self) -> None:
        if self._dirty:
            return
        self._dirty = True
        if self.on_invalidate is not None:
            self.on_invalidate()


class Tracker:
    """Minimal interface between the scope engine and a reactive runtime."""

    def track_read(self, revision: Revision) -> None:
        pass

    def notify_write(self, revision: Revision) -> None:
        pass

    @contextmanager
    def batch(self) -> Iterator[None]:
        yield


class NullTracker(Tracker):
    """Tracker that records nothing; reads and writes are plain storage."""


class ReactiveTracker(Tracker):
    """Default tracker: reads subscribe the running derivation, writes notify."""

    def __init__(self) -> None:
        self._batch_depth = 0
        self._pending: dict[Derivation, None] = {}

    def track_read(self, revision: Revision) -> None:
        derivation = current_derivation.get()
        if derivation is None or not derivation.active:
            return
        derivation.dependencies.add(revision)
        revision.observers.add(derivation)

    def notify_write(self, revision: Revision) -> None:
        running = current_derivation.get()
        for derivation in list(revision.observers):
            if derivation is running:
                continue
            if isinstance(derivation, Computed):
                derivation.invalidate()
            elif self._batch_depth:
                self._pending[derivation] = None
            else:
                derivation.invalidate()

    @contextmanager
    def batch(self) -> Iterator[None]:
        self._batch_depth += 1
        try:
            yield
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0:
                self._flush()

    def _flush(self) -> None:
        while self._pending:
            pending = list(self._pending)
            self._pending.clear()
            for derivation in pending:
                derivation.invalidate()

    @property
    def pending_count(self) -> int:
        return len(self._pending)


_tracker: Tracker = ReactiveTracker()


def get_tracker() -> Tracker:
    return _tracker


def set_tracker(tracker: Tracker) -> Tracker:
    """Install ``tracker`` as the ambient tracker and return the previous one."""

    global _tracker
    if not isinstance(tracker, Tracker):
        raise TypeError("Tracker must implement track_read/notify_write")
    previous = _tracker
    _tracker = tracker
    return previous


@contextmanager
def batch() -> Iterator[None]:
    with get_tracker().batch():
        yield


@contextmanager
def untracked() -> Iterator[None]:
    """Suspend dependency collection for the enclosed reads."""

    token = current_derivation.set(None)
    try:
        yield
    finally:
        current_derivation.reset(token)


__all__ = [
    "Computed",
    "Derivation",
    "Effect",
    "NullTracker",
    "ReactiveTracker",
    "Revision",
    "Tracker",
    "batch",
    "current_derivation",
    "get_tracker",
    "set_tracker",
    "untracked",
]
