"""
strata-config — configuration manager.

File: src/strata_config/config/manager.py
Last updated: 2026-10-18

Purpose
- Single entry point a command surface drives: effective views, key-path
  edits, diffs, tool-server operations, backups and import/export.

What should be included in this file
- Layer location per scope (global, project, in-memory session).
- Read path through an explicit ``DocumentCache``.
- Write path through ``DocumentStore.write_with_backup`` with cache
  invalidation after every write or restore.

Functional requirements
- A missing global or project layer reads as the empty document.
- Writing the project scope without a resolvable project location raises
  ``NotFoundError``.
- The session layer is validated like any other layer but never persisted.

Non-functional requirements
- Synchronous and single-process; no hidden shared state between instances.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from strata_config.backup.manager import BackupManager
from strata_config.config.cache import DocumentCache, file_fingerprint
from strata_config.config.codec import parse
from strata_config.config.diff import ConfigDiff, diff_documents
from strata_config.config.document import (
    EMPTY_DOCUMENT,
    BackupRecord,
    ConfigDocument,
    ConfigScope,
    ServerEntry,
    SourceMap,
    thaw_value,
)
from strata_config.config.key_path import assign, remove, split_key_path
from strata_config.config.merge import merge_layers, merge_layers_with_trace
from strata_config.config.store import DocumentStore
from strata_config.config.validation import ValidationIssue, assert_valid
from strata_config.constants import SECTION_SERVERS
from strata_config.errors import NotFoundError, ParseError, ValidationFailedError
from strata_config.paths import find_project_config, project_config_path
from strata_config.settings import ManagerSettings, load_settings
from strata_config.transfer import TransferFormat, export_document, import_document
from strata_config.utils.fs import read_bytes

PathLike = str | os.PathLike[str]

__all__ = ["ConfigManager"]


class ConfigManager:
    """Owns one backup area, one document store and one document cache."""

    def __init__(
        self,
        *,
        settings: ManagerSettings | None = None,
        global_path: PathLike | None = None,
        project_root: PathLike | None = None,
        start_dir: PathLike | None = None,
        backup_manager: BackupManager | None = None,
        cache: DocumentCache | None = None,
        logger: Any | None = None,
    ) -> None:
        self._settings = settings if settings is not None else load_settings()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._global_path = (
            Path(global_path) if global_path is not None else self._settings.global_config_path
        )
        self._project_root = Path(project_root) if project_root is not None else None
        self._start_dir = Path(start_dir) if start_dir is not None else None
        self._backups = (
            backup_manager
            if backup_manager is not None
            else BackupManager(
                self._settings.backup_dir,
                retention=self._settings.backup_retention,
                logger=self._logger,
            )
        )
        self._store = DocumentStore(self._backups, logger=self._logger)
        self._cache = cache if cache is not None else DocumentCache()
        self._session = EMPTY_DOCUMENT

    @property
    def settings(self) -> ManagerSettings:
        return self._settings

    @property
    def backup_manager(self) -> BackupManager:
        return self._backups

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def cache(self) -> DocumentCache:
        return self._cache

    # -- layers -----------------------------------------------------------

    def layer_path(self, scope: ConfigScope) -> Path | None:
        """Return the file backing ``scope``, or ``None`` when there is none."""

        scope = ConfigScope(scope)
        if scope is ConfigScope.GLOBAL:
            return self._global_path
        if scope is ConfigScope.PROJECT:
            if self._project_root is not None:
                return project_config_path(self._project_root)
            return find_project_config(self._start_dir)
        return None

    def read_layer(self, scope: ConfigScope) -> ConfigDocument:
        """Return one layer's document; a missing file reads as empty."""

        scope = ConfigScope(scope)
        if scope is ConfigScope.SESSION:
            return self._session
        path = self.layer_path(scope)
        if path is None:
            return EMPTY_DOCUMENT

        cached = self._cache.get(path)
        if cached is not None:
            return cached
        fingerprint = file_fingerprint(path)
        doc = self._store.read_or_empty(path)
        if fingerprint is not None:
            self._cache.put(path, doc, fingerprint=fingerprint)
        return doc

    def get_effective(self, scope: ConfigScope = ConfigScope.PROJECT) -> ConfigDocument:
        """Merge every layer up to ``scope`` in hierarchy order."""

        return merge_layers(*(doc for _scope, doc in self._layers(scope)))

    def get_effective_with_sources(
        self, scope: ConfigScope = ConfigScope.PROJECT
    ) -> tuple[ConfigDocument, SourceMap]:
        return merge_layers_with_trace(self._layers(scope))

    def get_value(
        self,
        key_path: str,
        scope: ConfigScope = ConfigScope.PROJECT,
        default: Any = None,
    ) -> Any:
        """Return the effective value at ``key_path`` as plain JSON data."""

        node: Any = self.get_effective(scope).to_payload()
        for part in split_key_path(key_path):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return thaw_value(node)

    # -- edits ------------------------------------------------------------

    def set_value(self, scope: ConfigScope, key_path: str, value: Any) -> ConfigDocument:
        """Assign ``value`` at ``key_path`` in the ``scope`` layer and persist it."""

        scope = ConfigScope(scope)
        self._require_location(scope)
        updated = assign(self.read_layer(scope), key_path, value)
        self._commit(scope, updated, action="set", key_path=key_path)
        return updated

    def unset_value(self, scope: ConfigScope, key_path: str) -> ConfigDocument:
        scope = ConfigScope(scope)
        self._require_location(scope)
        updated = remove(self.read_layer(scope), key_path)
        self._commit(scope, updated, action="unset", key_path=key_path)
        return updated

    def replace_layer(self, scope: ConfigScope, doc: ConfigDocument) -> BackupRecord | None:
        """Write ``doc`` as the whole ``scope`` layer."""

        scope = ConfigScope(scope)
        self._require_location(scope)
        return self._commit(scope, doc, action="replace")

    def diff(self, scope: ConfigScope = ConfigScope.PROJECT) -> ConfigDiff:
        """Compare the global-only view with the view up to ``scope``."""

        before = self.read_layer(ConfigScope.GLOBAL)
        after, sources = merge_layers_with_trace(self._layers(scope))
        return diff_documents(before, after, sources=sources)

    # -- tool servers -----------------------------------------------------

    def list_servers(self, scope: ConfigScope = ConfigScope.PROJECT) -> dict[str, ServerEntry]:
        """Effective tool servers up to ``scope`` in insertion order."""

        return dict(self.get_effective(scope).servers or {})

    def get_server(
        self, name: str, scope: ConfigScope = ConfigScope.PROJECT
    ) -> ServerEntry | None:
        return (self.get_effective(scope).servers or {}).get(name)

    def add_server(
        self,
        scope: ConfigScope,
        name: str,
        entry: ServerEntry | Mapping[str, Any],
    ) -> ConfigDocument:
        """Add a new server to the ``scope`` layer; existing names are rejected."""

        scope = ConfigScope(scope)
        self._require_location(scope)
        doc = self.read_layer(scope)
        if name in (doc.servers or {}):
            raise ValidationFailedError(
                ValidationIssue(
                    rule_name="server-map",
                    field_path=f"{SECTION_SERVERS}.{name}",
                    message=f"server {name!r} already exists",
                    suggestion="remove it first or use enable/disable to change it",
                )
            )
        server = entry if isinstance(entry, ServerEntry) else ServerEntry.from_payload(entry)
        updated = doc.with_server(name, server)
        self._commit(scope, updated, action="add_server", key_path=f"{SECTION_SERVERS}.{name}")
        return updated

    def remove_server(self, scope: ConfigScope, name: str) -> ConfigDocument:
        scope = ConfigScope(scope)
        doc = self._layer_with_server(scope, name)
        updated = doc.without_server(name)
        self._commit(
            scope, updated, action="remove_server", key_path=f"{SECTION_SERVERS}.{name}"
        )
        return updated

    def enable_server(self, scope: ConfigScope, name: str) -> ConfigDocument:
        return self._set_server_enabled(ConfigScope(scope), name, True)

    def disable_server(self, scope: ConfigScope, name: str) -> ConfigDocument:
        return self._set_server_enabled(ConfigScope(scope), name, False)

    # -- backups ----------------------------------------------------------

    def list_backups(self, scope: ConfigScope) -> list[BackupRecord]:
        path = self.layer_path(ConfigScope(scope))
        if path is None:
            return []
        return self._backups.list_backups(path)

    def restore_backup(self, record: BackupRecord) -> Path:
        """
        Restore ``record`` over its origin file.

        The snapshot must parse; the current file is snapshotted first so the
        restore itself can be undone. Retention applies afterwards.
        """

        if not record.path.is_file():
            raise NotFoundError(
                record.path,
                suggestion="list the available backups and pick an existing snapshot",
            )
        try:
            parse(read_bytes(record.path, operation="read backup"))
        except ParseError as exc:
            raise exc.with_path(record.path) from exc

        target = record.origin_path
        try:
            snapshot = self._backups.create_backup(target)
            try:
                restored = self._backups.restore(record, target)
            except BaseException:
                if snapshot is not None:
                    self._store.discard_snapshot(snapshot)
                raise
        finally:
            self._cache.invalidate(target)
        pruned = self._backups.cleanup(target)
        self._logger.info(
            "config_restored",
            path=restored.as_posix(),
            backup=record.path.as_posix(),
            pruned=pruned,
        )
        return restored

    def cleanup_backups(self, scope: ConfigScope, retain_count: int | None = None) -> int:
        path = self.layer_path(ConfigScope(scope))
        if path is None:
            return 0
        return self._backups.cleanup(path, retain_count)

    # -- import / export --------------------------------------------------

    def export_layer(
        self,
        scope: ConfigScope,
        path: PathLike,
        fmt: TransferFormat | str | None = None,
    ) -> Path:
        written = export_document(self.read_layer(ConfigScope(scope)), path, fmt)
        self._logger.info("config_exported", scope=str(scope), path=written.as_posix())
        return written

    def import_layer(
        self,
        scope: ConfigScope,
        path: PathLike,
        fmt: TransferFormat | str | None = None,
    ) -> ConfigDocument:
        """Replace the ``scope`` layer with the document stored at ``path``."""

        scope = ConfigScope(scope)
        self._require_location(scope)
        doc = import_document(path, fmt, validate=False)
        self._commit(scope, doc, action="import", source=Path(path).as_posix())
        return doc

    # -- internals --------------------------------------------------------

    def _layers(self, scope: ConfigScope) -> list[tuple[ConfigScope, ConfigDocument]]:
        layers: list[tuple[ConfigScope, ConfigDocument]] = []
        for layer_scope in ConfigScope(scope).layers():
            if layer_scope is ConfigScope.PROJECT:
                path = self.layer_path(layer_scope)
                if path is None or not path.is_file():
                    continue
            layers.append((layer_scope, self.read_layer(layer_scope)))
        return layers

    def _require_location(self, scope: ConfigScope) -> Path | None:
        if scope is ConfigScope.SESSION:
            return None
        path = self.layer_path(scope)
        if path is None:
            start = self._start_dir if self._start_dir is not None else Path.cwd()
            raise NotFoundError(
                project_config_path(start),
                suggestion=(
                    "create .claude/config.json in the project root, "
                    "or pass the project root explicitly"
                ),
            )
        return path

    def _commit(
        self,
        scope: ConfigScope,
        doc: ConfigDocument,
        *,
        action: str,
        **fields: Any,
    ) -> BackupRecord | None:
        if scope is ConfigScope.SESSION:
            assert_valid(doc, self._store.rules)
            self._session = doc
            self._logger.info("config_write_committed", scope=str(scope), action=action, **fields)
            return None

        path = self._require_location(scope)
        assert path is not None
        try:
            record = self._store.write_with_backup(path, doc)
        finally:
            self._cache.invalidate(path)
        self._logger.info(
            "config_write_committed",
            scope=str(scope),
            action=action,
            path=path.as_posix(),
            backup=record.path.as_posix() if record is not None else None,
            **fields,
        )
        return record

    def _layer_with_server(self, scope: ConfigScope, name: str) -> ConfigDocument:
        location = self._require_location(scope)
        doc = self.read_layer(scope)
        if name not in (doc.servers or {}):
            raise NotFoundError(
                location if location is not None else Path(f"<{scope}>"),
                key=f"server {name!r}",
                suggestion="list the configured servers to check the name",
            )
        return doc

    def _set_server_enabled(self, scope: ConfigScope, name: str, enabled: bool) -> ConfigDocument:
        doc = self._layer_with_server(scope, name)
        assert doc.servers is not None
        updated = doc.with_server(name, doc.servers[name].with_enabled(enabled))
        self._commit(
            scope,
            updated,
            action="enable_server" if enabled else "disable_server",
            key_path=f"{SECTION_SERVERS}.{name}.enabled",
        )
        return updated
