"""
strata-config — rule-based document validation.

File: src/strata_config/config/validation.py
Last updated: 2026-10-18

Purpose
- Define the fixed, ordered rule set every write is checked against.

What should be included in this file
- A closed set of stateless rule classes sharing one ``check`` capability.
- Fail-fast ``validate_all`` for writes and aggregate ``collect_issues`` for
  diagnostics.

Functional requirements
- Each failure reports rule name, dotted field path, message, suggestion.
- Rule order is fixed at import time; there is no runtime registration.

Non-functional requirements
- Keep rules deterministic and easy to audit.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import ClassVar, Final

from strata_config.config.document import ConfigDocument, ServerEntry, SkillEntry
from strata_config.constants import SECTION_ALLOWED_PATHS, SECTION_SERVERS, SECTION_SKILLS
from strata_config.errors import ValidationFailedError

__all__ = [
    "DEFAULT_RULES",
    "PathListRule",
    "ServerMapRule",
    "SkillMapRule",
    "ValidationIssue",
    "ValidationRule",
    "assert_valid",
    "collect_issues",
    "validate_all",
]


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    """Single structured validation failure."""

    rule_name: str
    field_path: str
    message: str
    suggestion: str


class ValidationRule:
    """Base for the closed rule set. Subclasses are stateless singletons."""

    __slots__ = ()

    name: ClassVar[str] = ""

    def issues(self, doc: ConfigDocument) -> Iterator[ValidationIssue]:
        raise NotImplementedError

    def check(self, doc: ConfigDocument) -> ValidationIssue | None:
        """Return the first issue this rule finds, or ``None``."""

        return next(self.issues(doc), None)

    def _issue(self, field_path: str, message: str, suggestion: str) -> ValidationIssue:
        return ValidationIssue(
            rule_name=self.name,
            field_path=field_path,
            message=message,
            suggestion=suggestion,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ServerMapRule(ValidationRule):
    __slots__ = ()

    name: ClassVar[str] = "server-map"

    def issues(self, doc: ConfigDocument) -> Iterator[ValidationIssue]:
        for server_name, entry in (doc.servers or {}).items():
            path = _join(SECTION_SERVERS, server_name)
            if not server_name.strip():
                yield self._issue(
                    path,
                    "server name is empty",
                    "every tool server must have a non-empty name",
                )
                continue
            yield from _enabled_issues(self, path, entry)
            yield from self._field_issues(path, entry)

    def _field_issues(self, path: str, entry: ServerEntry) -> Iterator[ValidationIssue]:
        if entry.command is not None and not isinstance(entry.command, str):
            yield self._issue(
                _join(path, "command"),
                f"expected string, got {type(entry.command).__name__}",
                "set command to the executable name, e.g. \"npx\"",
            )
        if entry.args is not None:
            if not _is_sequence(entry.args):
                yield self._issue(
                    _join(path, "args"),
                    f"expected array of strings, got {type(entry.args).__name__}",
                    "write args as a JSON array, e.g. [\"-y\", \"package\"]",
                )
            else:
                for index, item in enumerate(entry.args):
                    if not isinstance(item, str):
                        yield self._issue(
                            f"{_join(path, 'args')}[{index}]",
                            f"expected string, got {type(item).__name__}",
                            "quote every argument as a string",
                        )
        if entry.env is not None:
            if not isinstance(entry.env, Mapping):
                yield self._issue(
                    _join(path, "env"),
                    f"expected object, got {type(entry.env).__name__}",
                    "write env as an object of NAME: value strings",
                )
            else:
                for key, value in entry.env.items():
                    if not isinstance(value, str):
                        yield self._issue(
                            _join(_join(path, "env"), key),
                            f"expected string, got {type(value).__name__}",
                            "environment values must be strings; quote numbers and booleans",
                        )


class PathListRule(ValidationRule):
    __slots__ = ()

    name: ClassVar[str] = "path-list"

    def issues(self, doc: ConfigDocument) -> Iterator[ValidationIssue]:
        for index, item in enumerate(doc.allowed_paths or ()):
            path = f"{SECTION_ALLOWED_PATHS}[{index}]"
            if not isinstance(item, str):
                yield self._issue(
                    path,
                    f"expected string, got {type(item).__name__}",
                    "all allowed paths must be strings",
                )
            elif not item.strip():
                yield self._issue(
                    path,
                    f"path at index {index} is empty",
                    "all allowed paths must be non-empty strings",
                )
            elif "\x00" in item:
                yield self._issue(
                    path,
                    f"path {item!r} contains a NUL character",
                    "paths must be valid strings without NUL characters",
                )


class SkillMapRule(ValidationRule):
    __slots__ = ()

    name: ClassVar[str] = "skill-map"

    def issues(self, doc: ConfigDocument) -> Iterator[ValidationIssue]:
        for skill_name, entry in (doc.skills or {}).items():
            path = _join(SECTION_SKILLS, skill_name)
            if not skill_name.strip():
                yield self._issue(
                    path,
                    "skill name is empty",
                    "every skill must have a non-empty name",
                )
                continue
            yield from _enabled_issues(self, path, entry)


DEFAULT_RULES: Final[tuple[ValidationRule, ...]] = (
    ServerMapRule(),
    PathListRule(),
    SkillMapRule(),
)


def validate_all(
    doc: ConfigDocument,
    rules: Sequence[ValidationRule] = DEFAULT_RULES,
) -> ValidationIssue | None:
    """Run ``rules`` in order and return the first failure (fail-fast)."""

    for rule in rules:
        issue = rule.check(doc)
        if issue is not None:
            return issue
    return None


def assert_valid(
    doc: ConfigDocument,
    rules: Sequence[ValidationRule] = DEFAULT_RULES,
) -> ConfigDocument:
    """Validate ``doc`` and raise ``ValidationFailedError`` on the first failure."""

    issue = validate_all(doc, rules)
    if issue is not None:
        raise ValidationFailedError(issue)
    return doc


def collect_issues(
    doc: ConfigDocument,
    rules: Sequence[ValidationRule] = DEFAULT_RULES,
) -> tuple[ValidationIssue, ...]:
    """Return every issue from every rule, in rule order."""

    return tuple(issue for rule in rules for issue in rule.issues(doc))


def _enabled_issues(
    rule: ValidationRule,
    path: str,
    entry: ServerEntry | SkillEntry,
) -> Iterator[ValidationIssue]:
    if entry.enabled is None:
        yield rule._issue(
            _join(path, "enabled"),
            "missing required field",
            "add \"enabled\": true or \"enabled\": false",
        )
    elif not isinstance(entry.enabled, bool):
        yield rule._issue(
            _join(path, "enabled"),
            f"expected boolean, got {type(entry.enabled).__name__}",
            "use true or false without quotes",
        )


def _is_sequence(value: object) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, bytearray))


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"
