"""Parsed-document cache keyed by resolved path and file fingerprint.

A cached document is returned only while the file's ``(st_mtime_ns, st_size)``
still matches what was recorded when it was stored. Owners invalidate entries
after writing; the fingerprint check catches edits made by other processes.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from strata_config.config.document import ConfigDocument

PathLike = str | os.PathLike[str]
Fingerprint = tuple[int, int]

__all__ = ["DocumentCache", "file_fingerprint"]


def file_fingerprint(path: PathLike) -> Fingerprint | None:
    """Return ``(st_mtime_ns, st_size)`` or ``None`` when the file is missing."""

    try:
        stat = Path(path).stat()
    except OSError:
        return None
    return (int(stat.st_mtime_ns), int(stat.st_size))


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    fingerprint: Fingerprint
    document: ConfigDocument


class DocumentCache:
    """Explicit, instance-scoped cache. There is no process-wide registry."""

    __slots__ = ("_entries", "hits", "misses")

    def __init__(self) -> None:
        self._entries: dict[str, _CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def get(self, path: PathLike) -> ConfigDocument | None:
        key = _cache_key(path)
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if file_fingerprint(path) != entry.fingerprint:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.document

    def put(
        self,
        path: PathLike,
        document: ConfigDocument,
        *,
        fingerprint: Fingerprint | None = None,
    ) -> None:
        """Cache ``document`` under ``fingerprint``, which must be taken before the read."""

        if fingerprint is None:
            fingerprint = file_fingerprint(path)
        key = _cache_key(path)
        if fingerprint is None:
            self._entries.pop(key, None)
            return
        self._entries[key] = _CacheEntry(fingerprint=fingerprint, document=document)

    def invalidate(self, path: PathLike) -> None:
        self._entries.pop(_cache_key(path), None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, os.PathLike)):
            return False
        return _cache_key(path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def _cache_key(path: PathLike) -> str:
    return Path(path).expanduser().resolve(strict=False).as_posix()
