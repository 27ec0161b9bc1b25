"""
strata-config — document store.

File: src/strata_config/config/store.py
Last updated: 2026-10-18

Purpose
- Read configuration documents from disk and write them through the safe
  pipeline: validate, snapshot, atomic replace, prune.

Functional requirements
- ``read`` distinguishes missing, malformed and unreadable files.
- ``write_with_backup`` performs no filesystem work when validation fails and
  no write when the snapshot fails.
- Retention cleanup runs only after the new content is in place; a failed
  replace discards the snapshot it took.

Non-functional requirements
- Structured logging of every write with the rule set and backup taken.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog

from strata_config.backup.manager import BackupManager
from strata_config.config.codec import parse, serialize
from strata_config.config.document import EMPTY_DOCUMENT, BackupRecord, ConfigDocument
from strata_config.config.validation import DEFAULT_RULES, ValidationRule, assert_valid
from strata_config.errors import ConfigError, NotFoundError, ParseError, ValidationFailedError
from strata_config.utils.fs import read_bytes, write_atomic

PathLike = str | os.PathLike[str]

__all__ = ["DocumentStore"]


class DocumentStore:
    """Reads and safely writes configuration documents."""

    def __init__(
        self,
        backup_manager: BackupManager,
        *,
        rules: Sequence[ValidationRule] = DEFAULT_RULES,
        logger: Any | None = None,
    ) -> None:
        self._backups = backup_manager
        self._rules = tuple(rules)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def backup_manager(self) -> BackupManager:
        return self._backups

    @property
    def rules(self) -> tuple[ValidationRule, ...]:
        return self._rules

    def read(self, path: PathLike) -> ConfigDocument:
        """Parse the document at ``path``."""

        source = Path(path)
        if not source.is_file():
            raise NotFoundError(source)
        data = read_bytes(source, operation="read config")
        try:
            return parse(data)
        except ParseError as exc:
            raise exc.with_path(source) from exc

    def read_or_empty(self, path: PathLike) -> ConfigDocument:
        """Like ``read`` but a missing file yields the empty document."""

        try:
            return self.read(path)
        except NotFoundError as exc:
            if exc.path != Path(path):
                raise
            return EMPTY_DOCUMENT

    def write_with_backup(self, path: PathLike, doc: ConfigDocument) -> BackupRecord | None:
        """Validate, snapshot the current file, replace it and prune old snapshots."""

        target = Path(path)
        try:
            assert_valid(doc, self._rules)
        except ValidationFailedError as exc:
            self._logger.warning(
                "config_write_rejected",
                path=target.as_posix(),
                rule=exc.rule_name,
                field=exc.field_path,
            )
            raise

        record = self._backups.create_backup(target)
        try:
            write_atomic(target, serialize(doc))
        except BaseException:
            if record is not None:
                self.discard_snapshot(record)
            raise
        pruned = self._backups.cleanup(target)

        self._logger.info(
            "config_written",
            path=target.as_posix(),
            backup=record.path.as_posix() if record is not None else None,
            pruned=pruned,
        )
        return record

    def discard_snapshot(self, record: BackupRecord) -> None:
        """Drop a snapshot taken for a write that did not happen; failures are logged."""

        try:
            self._backups.discard(record)
        except ConfigError as exc:
            self._logger.warning(
                "backup_discard_failed",
                backup=record.path.as_posix(),
                error=str(exc),
            )
