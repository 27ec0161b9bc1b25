"""
strata-config — pre-write snapshots and retention.

File: src/strata_config/backup/manager.py
Last updated: 2026-10-18

Purpose
- Snapshot a document before it is overwritten and prune old snapshots.

What should be included in this file
- ``BackupManager`` with create/list/restore/cleanup operations.
- Backup file naming: ``<stem>_<YYYYMMDD_HHMMSS.ffffff>[_<n>].<ext>`` (UTC).

Functional requirements
- Snapshots of one source live in their own folder keyed by the source path,
  so two sources sharing a file name never share a retention window.
- Listing is ordered newest first by (timestamp, collision counter) parsed
  from the file name, not by filesystem mtimes.
- Restore goes through the atomic writer.
- Pruning never deletes outside the backup area.

Non-functional requirements
- Deterministic ordering; injectable clock for tests.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final

import structlog

from strata_config.config.document import BackupRecord
from strata_config.constants import (
    BACKUP_ORIGIN_MARKER,
    BACKUP_SOURCE_KEY_LENGTH,
    BACKUP_TIMESTAMP_FORMAT,
    DEFAULT_BACKUP_RETENTION,
)
from strata_config.errors import BackupFailedError, ConfigError, NotFoundError, wrap_os_error
from strata_config.utils.fs import delete_within, read_bytes, write_atomic
from strata_config.utils.hashing import path_key

PathLike = str | os.PathLike[str]
Clock = Callable[[], datetime]

_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?P<stem>.*)_(?P<stamp>\d{8}_\d{6}\.\d{6})(?:_(?P<seq>\d+))?(?P<ext>\.[^.]*)?$"
)

__all__ = [
    "BackupManager",
    "format_backup_name",
    "parse_backup_name",
]


def format_backup_name(source: Path, created_at: datetime, sequence: int = 0) -> str:
    """Build ``<stem>_<timestamp>[_<n>]<suffix>`` for ``source``."""

    stamp = created_at.astimezone(UTC).strftime(BACKUP_TIMESTAMP_FORMAT)
    stem = source.stem or source.name or "config"
    counter = f"_{sequence}" if sequence > 0 else ""
    return f"{stem}_{stamp}{counter}{source.suffix}"


def parse_backup_name(name: str) -> tuple[datetime, int] | None:
    """Return ``(created_at, sequence)`` encoded in a backup file name."""

    match = _NAME_PATTERN.match(name)
    if match is None:
        return None
    try:
        created_at = datetime.strptime(match.group("stamp"), BACKUP_TIMESTAMP_FORMAT)
    except ValueError:
        return None
    sequence = int(match.group("seq")) if match.group("seq") else 0
    return created_at.replace(tzinfo=UTC), sequence


class BackupManager:
    """Owns one backup area and its retention policy."""

    def __init__(
        self,
        backup_dir: PathLike,
        *,
        retention: int = DEFAULT_BACKUP_RETENTION,
        clock: Clock | None = None,
        logger: Any | None = None,
    ) -> None:
        if isinstance(retention, bool) or not isinstance(retention, int) or retention < 1:
            raise ValueError("retention must be an integer >= 1")
        self._backup_dir = Path(backup_dir)
        self._retention = retention
        self._clock = clock if clock is not None else _utc_now
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def backup_dir(self) -> Path:
        return self._backup_dir

    @property
    def retention(self) -> int:
        return self._retention

    def source_dir(self, source_path: PathLike) -> Path:
        """Return the folder holding snapshots of ``source_path``."""

        return self._backup_dir / path_key(source_path, length=BACKUP_SOURCE_KEY_LENGTH)

    def create_backup(self, source_path: PathLike) -> BackupRecord | None:
        """Snapshot ``source_path``; ``None`` when there is nothing to snapshot."""

        source = Path(source_path)
        if not source.is_file():
            return None

        try:
            data = read_bytes(source, operation="read file for backup")
            folder = self.source_dir(source)
            self._write_origin_marker(folder, source)

            created_at = self._clock().astimezone(UTC)
            sequence = 0
            destination = folder / format_backup_name(source, created_at, sequence)
            while destination.exists():
                sequence += 1
                destination = folder / format_backup_name(source, created_at, sequence)

            write_atomic(destination, data)
        except ConfigError as exc:
            raise BackupFailedError(source, exc) from exc

        record = BackupRecord(
            path=destination,
            origin_path=source,
            created_at=created_at,
            size=len(data),
            sequence=sequence,
        )
        self._logger.debug(
            "backup_created",
            source=source.as_posix(),
            backup=destination.as_posix(),
            size=record.size,
        )
        return record

    def list_backups(self, source_path: PathLike) -> list[BackupRecord]:
        """Return snapshots of ``source_path``, newest first."""

        source = Path(source_path)
        folder = self.source_dir(source)
        if not folder.is_dir():
            return []

        expected_prefix = f"{source.stem or source.name or 'config'}_"
        records: list[BackupRecord] = []
        try:
            candidates = sorted(folder.iterdir())
        except OSError as exc:
            raise wrap_os_error("read backup directory", folder, exc) from exc

        for candidate in candidates:
            if not candidate.name.startswith(expected_prefix):
                continue
            parsed = parse_backup_name(candidate.name)
            if parsed is None:
                continue
            try:
                stat = candidate.stat()
            except FileNotFoundError:
                continue
            except OSError as exc:
                raise wrap_os_error("read backup entry", candidate, exc) from exc
            if not candidate.is_file():
                continue
            created_at, sequence = parsed
            records.append(
                BackupRecord(
                    path=candidate,
                    origin_path=source,
                    created_at=created_at,
                    size=stat.st_size,
                    sequence=sequence,
                )
            )

        records.sort(key=lambda record: record.sort_key, reverse=True)
        return records

    def latest_backup(self, source_path: PathLike) -> BackupRecord | None:
        records = self.list_backups(source_path)
        return records[0] if records else None

    def restore(self, record: BackupRecord, target_path: PathLike | None = None) -> Path:
        """Copy a snapshot back over ``target_path`` (default: its origin)."""

        if not record.path.is_file():
            raise NotFoundError(
                record.path,
                suggestion="list the available backups and pick an existing snapshot",
            )
        target = Path(target_path) if target_path is not None else record.origin_path
        data = read_bytes(record.path, operation="read backup")
        write_atomic(target, data)
        self._logger.info(
            "backup_restored",
            backup=record.path.as_posix(),
            target=target.as_posix(),
            size=len(data),
        )
        return target

    def discard(self, record: BackupRecord) -> None:
        """Delete one snapshot, e.g. one whose write was abandoned."""

        delete_within(record.path, self.source_dir(record.origin_path), operation="discard backup")
        self._logger.debug("backup_discarded", backup=record.path.as_posix())

    def cleanup(self, source_path: PathLike, retain_count: int | None = None) -> int:
        """Delete snapshots beyond the newest ``retain_count``; returns how many went."""

        keep = self._retention if retain_count is None else retain_count
        if isinstance(keep, bool) or not isinstance(keep, int) or keep < 0:
            raise ValueError("retain_count must be an integer >= 0")

        records = self.list_backups(source_path)
        stale = records[keep:]
        folder = self.source_dir(source_path)
        # Oldest first, so an interrupted cleanup still keeps the newest ones.
        for record in reversed(stale):
            delete_within(record.path, folder, operation="remove old backup")
            self._logger.debug("backup_pruned", backup=record.path.as_posix())
        return len(stale)

    def _write_origin_marker(self, folder: Path, source: Path) -> None:
        marker = folder / BACKUP_ORIGIN_MARKER
        if marker.is_file():
            return
        origin = source.expanduser().resolve(strict=False).as_posix()
        write_atomic(marker, origin + "\n")


def _utc_now() -> datetime:
    return datetime.now(UTC)

