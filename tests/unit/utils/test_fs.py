"""
strata-config — unit tests for filesystem utilities

File: tests/unit/utils/test_fs.py
Last updated: 2026-10-18

Purpose
- Validate the atomic writer under injected failures and the guarded delete.

What this test file should cover
- Target unchanged and no temp file left when the rename fails.
- Permission failures mapped to ``PermissionDeniedError``.
- Interrupts during the temp write clean up and propagate.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from strata_config.errors import FilesystemError, NotFoundError, PermissionDeniedError
from strata_config.utils.fs import delete_within, is_within, read_bytes, write_atomic


def _temp_files(directory: Path) -> list[Path]:
    return sorted(directory.glob(".*.tmp"))


def test_write_atomic_creates_parents_and_writes_bytes(tmp_path: Path) -> None:
    target = tmp_path / "a" / "b" / "config.json"

    write_atomic(target, "{}\n")

    assert target.read_text(encoding="utf-8") == "{}\n"
    assert _temp_files(target.parent) == []


def test_write_atomic_replaces_existing_content(tmp_path: Path) -> None:
    target = tmp_path / "config.json"
    target.write_bytes(b"old")

    write_atomic(target, b"new")

    assert target.read_bytes() == b"new"


def test_rename_failure_leaves_target_unchanged(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "config.json"
    target.write_bytes(b"before")

    def _fail(src: object, dst: object) -> None:
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(os, "replace", _fail)

    with pytest.raises(FilesystemError) as exc_info:
        write_atomic(target, b"after")

    assert exc_info.value.operation == "atomic rename"
    assert target.read_bytes() == b"before"
    assert _temp_files(tmp_path) == []


def test_rename_failure_on_absent_target_keeps_it_absent(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "config.json"

    def _fail(src: object, dst: object) -> None:
        raise OSError(5, "Input/output error")

    monkeypatch.setattr(os, "replace", _fail)

    with pytest.raises(FilesystemError):
        write_atomic(target, b"after")

    assert not target.exists()
    assert _temp_files(tmp_path) == []


def test_permission_error_is_distinguished(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "config.json"

    def _deny(src: object, dst: object) -> None:
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(os, "replace", _deny)

    with pytest.raises(PermissionDeniedError) as exc_info:
        write_atomic(target, b"data")

    assert exc_info.value.path == target


def test_interrupt_during_temp_write_cleans_up(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    target = tmp_path / "config.json"
    target.write_bytes(b"before")

    def _interrupt(fd: int) -> None:
        raise KeyboardInterrupt

    monkeypatch.setattr(os, "fsync", _interrupt)

    with pytest.raises(KeyboardInterrupt):
        write_atomic(target, b"after")

    assert target.read_bytes() == b"before"
    assert _temp_files(tmp_path) == []


def test_read_bytes_maps_missing_file(tmp_path: Path) -> None:
    with pytest.raises(NotFoundError):
        read_bytes(tmp_path / "absent.json")


def test_is_within(tmp_path: Path) -> None:
    inner = tmp_path / "area" / "file.txt"
    inner.parent.mkdir()
    inner.write_text("x", encoding="utf-8")
    outside = tmp_path / "outside.txt"
    outside.write_text("x", encoding="utf-8")

    assert is_within(inner, tmp_path / "area")
    assert not is_within(outside, tmp_path / "area")
    assert not is_within(inner, tmp_path / "missing")


def test_delete_within_refuses_outside_paths(tmp_path: Path) -> None:
    area = tmp_path / "area"
    area.mkdir()
    inside = area / "old.json"
    inside.write_text("x", encoding="utf-8")
    outside = tmp_path / "keep.json"
    outside.write_text("x", encoding="utf-8")

    delete_within(inside, area)
    with pytest.raises(FilesystemError):
        delete_within(outside, area)

    assert not inside.exists()
    assert outside.exists()
