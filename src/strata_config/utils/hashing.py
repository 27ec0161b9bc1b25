"""Deterministic SHA-256 helpers used to key per-source backup folders."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

PathLike = str | os.PathLike[str]

__all__ = [
    "path_key",
    "sha256_bytes",
    "sha256_text",
]


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str, *, encoding: str = "utf-8") -> str:
    """Return SHA-256 hex digest for text encoded with ``encoding``."""

    return sha256_bytes(text.encode(encoding))


def path_key(path: PathLike, *, length: int = 16) -> str:
    """
    Return a stable short key for ``path``.

    The key is derived from the absolute, symlink-resolved POSIX form so the
    same file reached through different relative paths maps to one key.
    """

    if length <= 0:
        raise ValueError("length must be > 0")
    resolved = Path(path).expanduser().resolve(strict=False)
    return sha256_text(resolved.as_posix())[:length]
