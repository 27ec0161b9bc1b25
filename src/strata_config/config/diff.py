"""Structured leaf-level differences between two effective documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from strata_config.config.document import ConfigDocument, SourceMap
from strata_config.config.merge import leaf_paths

__all__ = [
    "ChangeKind",
    "ConfigDiff",
    "DiffEntry",
    "diff_documents",
]


class ChangeKind(StrEnum):
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


@dataclass(frozen=True, slots=True)
class DiffEntry:
    kind: ChangeKind
    key_path: str
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"kind": self.kind.value, "key_path": self.key_path}
        if self.kind is not ChangeKind.ADDED:
            out["old_value"] = self.old_value
        if self.kind is not ChangeKind.REMOVED:
            out["new_value"] = self.new_value
        return out


@dataclass(frozen=True, slots=True)
class ConfigDiff:
    """Differences plus the attribution map of the merge that produced ``after``."""

    added: tuple[DiffEntry, ...] = ()
    removed: tuple[DiffEntry, ...] = ()
    modified: tuple[DiffEntry, ...] = ()
    sources: SourceMap = field(default_factory=SourceMap)

    @property
    def entries(self) -> tuple[DiffEntry, ...]:
        return tuple(sorted((*self.added, *self.removed, *self.modified), key=_entry_key))

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    def to_dict(self) -> dict[str, Any]:
        return {
            "added": [entry.to_dict() for entry in self.added],
            "removed": [entry.to_dict() for entry in self.removed],
            "modified": [entry.to_dict() for entry in self.modified],
            "sources": self.sources.to_dict(),
        }


def diff_documents(
    before: ConfigDocument,
    after: ConfigDocument,
    *,
    sources: SourceMap | None = None,
) -> ConfigDiff:
    """Compare leaf key-paths of ``before`` and ``after``; results are path-sorted."""

    left = leaf_paths(before)
    right = leaf_paths(after)

    added = [
        DiffEntry(ChangeKind.ADDED, path, new_value=right[path])
        for path in sorted(right.keys() - left.keys())
    ]
    removed = [
        DiffEntry(ChangeKind.REMOVED, path, old_value=left[path])
        for path in sorted(left.keys() - right.keys())
    ]
    modified = [
        DiffEntry(ChangeKind.MODIFIED, path, old_value=left[path], new_value=right[path])
        for path in sorted(left.keys() & right.keys())
        if not _same_value(left[path], right[path])
    ]
    return ConfigDiff(
        added=tuple(added),
        removed=tuple(removed),
        modified=tuple(modified),
        sources=sources if sources is not None else SourceMap(),
    )


def _same_value(left: Any, right: Any) -> bool:
    # bool is an int subclass; True must not equal 1 here.
    return type(left) is type(right) and left == right


def _entry_key(entry: DiffEntry) -> tuple[str, str]:
    return (entry.key_path, entry.kind.value)
