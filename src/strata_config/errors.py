"""
strata-config — typed error taxonomy.

File: src/strata_config/errors.py
Last updated: 2026-10-18

Purpose
- Define the exceptions every fallible operation raises.

What should be included in this file
- One exception per failure class: missing document, malformed document,
  rule violation, filesystem failure, backup failure, permission failure.
- A helper that maps ``OSError`` subclasses onto the taxonomy.

Functional requirements
- Every message names the path/operation involved and ends with an
  actionable suggestion.
- Permission failures are distinguished from generic filesystem errors.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from strata_config.config.validation import ValidationIssue

PathLike = str | os.PathLike[str]

__all__ = [
    "BackupFailedError",
    "ConfigError",
    "FilesystemError",
    "NotFoundError",
    "ParseError",
    "PermissionDeniedError",
    "ValidationFailedError",
    "wrap_os_error",
]


class ConfigError(Exception):
    """Base class for all strata-config failures."""

    suggestion: str = ""

    def __init__(self, message: str, *, suggestion: str | None = None) -> None:
        if suggestion is not None:
            self.suggestion = suggestion
        self.message = message
        rendered = message if not self.suggestion else f"{message}\n\nSuggestion: {self.suggestion}"
        super().__init__(rendered)


class NotFoundError(ConfigError):
    """
    A document, backup or entry that was explicitly requested does not exist.

    ``key`` names an entry inside the document at ``path`` when the file
    itself exists but the entry does not.
    """

    def __init__(
        self,
        path: PathLike,
        *,
        key: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        self.path = Path(path)
        self.key = key
        message = (
            f"configuration file not found: {self.path}"
            if key is None
            else f"{key} not found in {self.path}"
        )
        super().__init__(
            message,
            suggestion=suggestion
            or "create the file first or point the command at an existing location",
        )


class ParseError(ConfigError):
    """Malformed document; ``line``/``column`` are 1-based and ``None`` when unknown."""

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
        path: PathLike | None = None,
    ) -> None:
        self.reason = message
        self.line = line
        self.column = column
        self.path = Path(path) if path is not None else None
        where = "unknown location"
        if line is not None and column is not None:
            where = f"line {line}, column {column}"
        source = f" in {self.path}" if self.path is not None else ""
        super().__init__(
            f"invalid configuration document{source} at {where}: {message}",
            suggestion="check the JSON syntax (quotes, commas, brackets) and section shapes",
        )

    @property
    def has_location(self) -> bool:
        return self.line is not None and self.column is not None

    def with_path(self, path: PathLike) -> ParseError:
        """Return a copy of this error attributed to ``path``."""

        return ParseError(self.reason, line=self.line, column=self.column, path=path)


class ValidationFailedError(ConfigError):
    """A validation rule rejected the document."""

    def __init__(self, issue: ValidationIssue) -> None:
        self.issue = issue
        super().__init__(
            f"configuration validation failed: {issue.rule_name} at "
            f"{issue.field_path or '<root>'}: {issue.message}",
            suggestion=issue.suggestion,
        )

    @property
    def rule_name(self) -> str:
        return self.issue.rule_name

    @property
    def field_path(self) -> str:
        return self.issue.field_path


class FilesystemError(ConfigError):
    """An I/O operation failed; wraps the underlying ``OSError``."""

    def __init__(self, operation: str, path: PathLike, cause: BaseException | None = None) -> None:
        self.operation = operation
        self.path = Path(path)
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"filesystem error: {operation} failed for {self.path}{detail}",
            suggestion="check file permissions and available disk space",
        )


class BackupFailedError(ConfigError):
    """The pre-write snapshot could not be created; the write was aborted."""

    def __init__(self, path: PathLike, cause: BaseException | None = None) -> None:
        self.path = Path(path)
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(
            f"backup creation failed for {self.path}{detail}",
            suggestion=(
                "ensure the backup directory is writable and has free space; "
                "the write was aborted to protect your data"
            ),
        )


class PermissionDeniedError(ConfigError):
    """The OS refused access to a path."""

    def __init__(self, operation: str, path: PathLike) -> None:
        self.operation = operation
        self.path = Path(path)
        super().__init__(
            f"permission denied: {operation} on {self.path}",
            suggestion="check the file ownership and mode, or run with appropriate privileges",
        )


def wrap_os_error(operation: str, path: PathLike, exc: OSError) -> ConfigError:
    """Translate ``exc`` into the typed taxonomy."""

    if isinstance(exc, PermissionError):
        return PermissionDeniedError(operation, path)
    if isinstance(exc, FileNotFoundError):
        return NotFoundError(path)
    return FilesystemError(operation, path, exc)
