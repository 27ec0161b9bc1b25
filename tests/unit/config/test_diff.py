"""
strata-config — unit tests for document diffs

File: tests/unit/config/test_diff.py
Last updated: 2026-10-18

Purpose
- Validate leaf-level added/removed/modified classification.
"""

from __future__ import annotations

from strata_config.config.diff import ChangeKind, diff_documents
from strata_config.config.document import (
    EMPTY_DOCUMENT,
    ConfigDocument,
    ConfigScope,
    ServerEntry,
    SourceMap,
)


def test_identical_documents_have_empty_diff() -> None:
    doc = ConfigDocument(servers={"npx": ServerEntry()}, allowed_paths=("~/a",))

    diff = diff_documents(doc, doc)

    assert diff.is_empty
    assert diff.entries == ()


def test_diff_classifies_leaves() -> None:
    before = ConfigDocument(
        servers={"npx": ServerEntry(enabled=True, args=("-y",))},
        allowed_paths=("~/a",),
    )
    after = ConfigDocument(
        servers={"npx": ServerEntry(enabled=False), "uvx": ServerEntry(enabled=True)},
        allowed_paths=(),
    )

    diff = diff_documents(before, after)

    assert [entry.key_path for entry in diff.added] == ["mcpServers.uvx.enabled"]
    assert [entry.key_path for entry in diff.removed] == ["mcpServers.npx.args"]
    assert [(entry.key_path, entry.old_value, entry.new_value) for entry in diff.modified] == [
        ("allowedPaths", ["~/a"], []),
        ("mcpServers.npx.enabled", True, False),
    ]
    assert [entry.kind for entry in diff.entries] == [
        ChangeKind.MODIFIED,
        ChangeKind.REMOVED,
        ChangeKind.MODIFIED,
        ChangeKind.ADDED,
    ]


def test_boolean_and_integer_are_different_values() -> None:
    diff = diff_documents(
        ConfigDocument(extensions={"flag": 1}),
        ConfigDocument(extensions={"flag": True}),
    )

    assert [entry.key_path for entry in diff.modified] == ["flag"]


def test_diff_to_dict_carries_sources() -> None:
    sources = SourceMap({"theme": ConfigScope.PROJECT})

    diff = diff_documents(
        EMPTY_DOCUMENT, ConfigDocument(extensions={"theme": "dark"}), sources=sources
    )

    assert diff.to_dict() == {
        "added": [{"kind": "added", "key_path": "theme", "new_value": "dark"}],
        "removed": [],
        "modified": [],
        "sources": {"theme": "project"},
    }
