"""Error taxonomy tests: OS error mapping and suggestion rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from strata_config.config.validation import ValidationIssue
from strata_config.errors import (
    BackupFailedError,
    ConfigError,
    FilesystemError,
    NotFoundError,
    ParseError,
    PermissionDeniedError,
    ValidationFailedError,
    wrap_os_error,
)


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (PermissionError(13, "denied"), PermissionDeniedError),
        (FileNotFoundError(2, "missing"), NotFoundError),
        (IsADirectoryError(21, "is a dir"), FilesystemError),
        (OSError(28, "no space"), FilesystemError),
    ],
)
def test_wrap_os_error(exc: OSError, expected: type[ConfigError]) -> None:
    wrapped = wrap_os_error("write", Path("/x/config.json"), exc)

    assert type(wrapped) is expected
    assert wrapped.path == Path("/x/config.json")  # type: ignore[attr-defined]


def test_every_error_carries_a_suggestion() -> None:
    issue = ValidationIssue("path-list", "allowedPaths[0]", "empty", "use a path")
    errors: list[ConfigError] = [
        NotFoundError("/x"),
        NotFoundError("/x", key="server 'npx'"),
        ParseError("bad"),
        ValidationFailedError(issue),
        FilesystemError("rename", "/x", OSError("boom")),
        BackupFailedError("/x"),
        PermissionDeniedError("write", "/x"),
    ]

    for error in errors:
        assert error.suggestion
        assert f"Suggestion: {error.suggestion}" in str(error)


def test_not_found_for_entry_names_the_key() -> None:
    error = NotFoundError("/x/config.json", key="server 'npx'")

    assert error.message == "server 'npx' not found in /x/config.json"


def test_parse_error_location_rendering() -> None:
    located = ParseError("Expecting value", line=3, column=7).with_path("/x/config.json")

    assert located.path == Path("/x/config.json")
    assert "line 3, column 7" in located.message
    assert "unknown location" in ParseError("bad").message


def test_validation_error_exposes_issue() -> None:
    issue = ValidationIssue("server-map", "mcpServers.npx.enabled", "expected boolean", "fix it")

    error = ValidationFailedError(issue)

    assert error.issue is issue
    assert error.rule_name == "server-map"
    assert error.field_path == "mcpServers.npx.enabled"
