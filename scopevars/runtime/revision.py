"""Per-scope revision ledger."""

from __future__ import annotations

from typing import Any, Hashable

from .tracking import Revision, get_tracker


class _AnyKey:
    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return "<any key>"


ANY_KEY = _AnyKey()


def bump_revision(revision: Revision) -> int:
    """Increment ``revision`` and notify its observers."""

    revision.value += 1
    get_tracker().notify_write(revision)
    return revision.value


class RevisionLedger:
    """Maps variable names to revision counters, plus a key-set counter."""

    def __init__(self, owner: Any = None):
        self.owner = owner
        self._revisions: dict[Hashable, Revision] = {}
        self.keys_revision = Revision(ANY_KEY, owner)

    def revision(self, key: Hashable) -> Revision:
        revision = self._revisions.get(key)
        if revision is None:
            revision = Revision(key, self.owner)
            self._revisions[key] = revision
        return revision

    def value(self, key: Hashable) -> int:
        revision = self._revisions.get(key)
        return revision.value if revision is not None else 0

    def track(self, key: Hashable) -> None:
        get_tracker().track_read(self.revision(key))

    def bump(self, key: Hashable) -> int:
        return bump_revision(self.revision(key))

    def track_keys(self) -> None:
        get_tracker().track_read(self.keys_revision)

    def bump_keys(self) -> int:
        return bump_revision(self.keys_revision)

    def keys(self) -> list[Hashable]:
        return list(self._revisions)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._revisions

    def __repr__(self) -> str:  # pragma: no cover - representation helper
        return f"<RevisionLedger {len(self._revisions)} keys, keys@{self.keys_revision.value}>"


__all__ = [
    "ANY_KEY",
    "RevisionLedger",
    "bump_revision",
]
