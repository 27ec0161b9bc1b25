"""
strata-config — filesystem utilities

File: src/strata_config/utils/fs.py
Last updated: 2026-10-18

Purpose
- Provide the crash-safe write primitive and typed read/delete helpers.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step.
- A failure at any point before the replace leaves the target untouched and removes the temp file.
- Deletion refuses paths outside the given root.

Non-functional requirements
- Standard library only and cross-platform behavior where feasible.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path

from strata_config.errors import FilesystemError, wrap_os_error

PathLike = str | os.PathLike[str]

__all__ = [
    "delete_within",
    "is_within",
    "read_bytes",
    "write_atomic",
]


def write_atomic(target: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``target``.

    The write strategy is:
    1. create the parent directory when missing,
    2. create temp file in the same directory,
    3. write + flush + fsync file data,
    4. replace target via ``os.replace``.

    ``os.replace`` is the only step a concurrent reader can observe.
    """

    target_path = Path(target)
    payload = data.encode(encoding) if isinstance(data, str) else data

    try:
        target_path.parent.mkdir(parents=True, exist_ok=True)
        target_parent = target_path.parent.resolve(strict=True)
    except OSError as exc:
        raise wrap_os_error("create config directory", target_path.parent, exc) from exc
    if not target_parent.is_dir():
        raise FilesystemError("create config directory", target_parent)

    try:
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{target_path.name}.",
            suffix=".tmp",
            dir=str(target_parent),
        )
    except OSError as exc:
        raise wrap_os_error("create temp file", target_parent, exc) from exc
    temp_path = Path(temp_name)

    operation = "write temp file"
    try:
        with os.fdopen(fd, "wb") as file_handle:
            file_handle.write(payload)
            file_handle.flush()
            os.fsync(file_handle.fileno())

        operation = "atomic rename"
        os.replace(temp_path, target_path)
    except OSError as exc:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise wrap_os_error(operation, target_path, exc) from exc
    except BaseException:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise

    _fsync_directory(target_parent)


def read_bytes(path: PathLike, *, operation: str = "read file") -> bytes:
    """Read ``path`` and translate OS failures into typed errors."""

    file_path = Path(path)
    try:
        return file_path.read_bytes()
    except OSError as exc:
        raise wrap_os_error(operation, file_path, exc) from exc


def is_within(child: PathLike, parent: PathLike) -> bool:
    """Return ``True`` if resolved ``child`` is within resolved ``parent``."""

    try:
        resolved_parent = Path(parent).resolve(strict=True)
    except FileNotFoundError:
        return False
    if not resolved_parent.is_dir():
        return False

    try:
        resolved_child = Path(child).resolve(strict=True)
    except FileNotFoundError:
        return False

    return _is_relative_to(resolved_child, resolved_parent)


def delete_within(path: PathLike, root: PathLike, *, operation: str = "delete file") -> None:
    """Delete the regular file ``path`` only if it is contained within ``root``."""

    target = Path(path)
    if not is_within(target, root):
        raise FilesystemError(operation, target, ValueError("path is outside the managed area"))
    try:
        target.unlink()
    except OSError as exc:
        raise wrap_os_error(operation, target, exc) from exc


def _is_relative_to(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
    except ValueError:
        return False
    return True


def _fsync_directory(path: Path) -> None:
    """
    Best-effort directory fsync for metadata durability after ``os.replace``.

    Some platforms/filesystems do not support fsync on directories.
    """

    if os.name == "nt":
        return

    flags = os.O_RDONLY
    if hasattr(os, "O_DIRECTORY"):
        flags |= os.O_DIRECTORY

    try:
        dir_fd = os.open(path, flags)
    except OSError:
        return

    try:
        os.fsync(dir_fd)
    except OSError:
        return
    finally:
        os.close(dir_fd)
