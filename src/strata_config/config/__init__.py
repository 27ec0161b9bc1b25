"""
strata-config config package public API.

File: src/strata_config/config/__init__.py
Last updated: 2026-10-18

Purpose
- Export the document model, codec, validator, merge engine, key-path and
  diff helpers.

Non-functional requirements
- Keep import-time surface small; the store, cache and manager are imported
  from their own modules.
"""

from strata_config.config.codec import document_from_payload, parse, serialize, serialize_text
from strata_config.config.diff import ChangeKind, ConfigDiff, DiffEntry, diff_documents
from strata_config.config.document import (
    EMPTY_DOCUMENT,
    BackupRecord,
    ConfigDocument,
    ConfigScope,
    ServerEntry,
    SkillEntry,
    SourceMap,
)
from strata_config.config.key_path import assign, parse_value_text, remove, split_key_path
from strata_config.config.merge import (
    leaf_paths,
    merge,
    merge_layers,
    merge_layers_with_trace,
    merge_with_trace,
)
from strata_config.config.validation import (
    DEFAULT_RULES,
    ValidationIssue,
    ValidationRule,
    assert_valid,
    collect_issues,
    validate_all,
)

__all__ = [
    "DEFAULT_RULES",
    "EMPTY_DOCUMENT",
    "BackupRecord",
    "ChangeKind",
    "ConfigDiff",
    "ConfigDocument",
    "ConfigScope",
    "DiffEntry",
    "ServerEntry",
    "SkillEntry",
    "SourceMap",
    "ValidationIssue",
    "ValidationRule",
    "assert_valid",
    "assign",
    "collect_issues",
    "diff_documents",
    "document_from_payload",
    "leaf_paths",
    "merge",
    "merge_layers",
    "merge_layers_with_trace",
    "merge_with_trace",
    "parse",
    "parse_value_text",
    "remove",
    "serialize",
    "serialize_text",
    "split_key_path",
    "validate_all",
]
