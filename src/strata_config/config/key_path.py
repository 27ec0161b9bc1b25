"""
strata-config — dotted key-path assignment.

File: src/strata_config/config/key_path.py
Last updated: 2026-10-18

Purpose
- Apply ``mcpServers.npx.enabled = false`` style assignments to a document,
  returning a new document.

Functional requirements
- Section-aware routing for the well-known sections; every other head key
  writes into the extension bag, creating nested objects as needed.
- Malformed paths raise ``ValidationFailedError`` with rule ``key-path``.
- Element types are not coerced here; the validator judges the result.
"""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from strata_config.config.document import (
    ConfigDocument,
    ServerEntry,
    SkillEntry,
    thaw_value,
)
from strata_config.config.validation import ValidationIssue
from strata_config.constants import (
    MAP_SECTIONS,
    SECTION_ALLOWED_PATHS,
    SECTION_INSTRUCTIONS,
    SECTION_SERVERS,
    SECTION_SKILLS,
    SEQUENCE_SECTIONS,
)
from strata_config.errors import ValidationFailedError

RULE_NAME = "key-path"

__all__ = [
    "RULE_NAME",
    "assign",
    "parse_value_text",
    "remove",
    "split_key_path",
]


def split_key_path(key_path: str) -> tuple[str, ...]:
    """Split ``key_path`` on dots; every segment must be non-empty."""

    if not isinstance(key_path, str) or not key_path.strip():
        raise _key_path_error(
            str(key_path), "key path cannot be empty", "use e.g. mcpServers.npx.enabled"
        )
    parts = tuple(key_path.split("."))
    if not parts[0]:
        raise _key_path_error(
            key_path, "key path must start with a section name", "remove the leading dot"
        )
    if "" in parts:
        raise _key_path_error(
            key_path,
            "key path contains an empty segment",
            "remove the trailing or doubled dot",
        )
    return parts


def parse_value_text(text: str) -> Any:
    """Interpret command-line text: JSON when it parses, otherwise the raw string."""

    try:
        return json.loads(text)
    except ValueError:
        return text


def assign(doc: ConfigDocument, key_path: str, value: Any) -> ConfigDocument:
    """Return a new document with ``value`` stored at ``key_path``."""

    parts = split_key_path(key_path)
    head, rest = parts[0], parts[1:]
    if head == SECTION_SERVERS:
        return _assign_entry(doc, key_path, head, rest, value, ServerEntry)
    if head == SECTION_SKILLS:
        return _assign_entry(doc, key_path, head, rest, value, SkillEntry)
    if head == SECTION_ALLOWED_PATHS:
        _no_nested(key_path, rest)
        if isinstance(value, str):
            return doc.with_allowed_paths((value,))
        return doc.with_allowed_paths(_as_list(key_path, value))
    if head == SECTION_INSTRUCTIONS:
        _no_nested(key_path, rest)
        if isinstance(value, str):
            return doc.with_custom_instructions((*(doc.custom_instructions or ()), value))
        return doc.with_custom_instructions(_as_list(key_path, value))

    if not rest:
        return doc.with_extension(head, value)
    current = thaw_value(doc.extensions.get(head)) if head in doc.extensions else {}
    if not isinstance(current, dict):
        current = {}
    return doc.with_extension(head, _set_nested(current, rest, value))


def remove(doc: ConfigDocument, key_path: str) -> ConfigDocument:
    """Return a new document without the section, entry or field at ``key_path``."""

    parts = split_key_path(key_path)
    head, rest = parts[0], parts[1:]
    if not rest:
        return doc.with_section(head, None)

    if head in MAP_SECTIONS:
        entries = doc.section(head)
        name = rest[0]
        if entries is None or name not in entries:
            return doc
        if len(rest) == 1:
            return doc.without_server(name) if head == SECTION_SERVERS else doc.without_skill(name)
        payload = entries[name].to_payload()
        _delete_nested(payload, rest[1:])
        return _store_entry(doc, head, name, payload)
    if head in SEQUENCE_SECTIONS:
        _no_nested(key_path, rest)

    if head not in doc.extensions:
        return doc
    current = thaw_value(doc.extensions[head])
    if not isinstance(current, dict):
        return doc
    _delete_nested(current, rest)
    return doc.with_extension(head, current)


def _assign_entry(
    doc: ConfigDocument,
    key_path: str,
    section: str,
    rest: Sequence[str],
    value: Any,
    entry_type: type[ServerEntry] | type[SkillEntry],
) -> ConfigDocument:
    if not rest:
        if not isinstance(value, Mapping):
            raise _key_path_error(
                key_path,
                f"{section} must be an object of named entries",
                f"pass an object, or address one entry with {section}.<name>",
            )
        entries = {}
        for name, entry in value.items():
            entries[str(name)] = _entry_from_value(f"{section}.{name}", entry, entry_type)
        return doc.with_section(section, entries)

    name = rest[0]
    if len(rest) == 1:
        return _store_entry(doc, section, name, _entry_payload(key_path, value))

    existing = (doc.section(section) or {}).get(name)
    payload = existing.to_payload() if existing is not None else {"enabled": True}
    return _store_entry(doc, section, name, _set_nested(payload, rest[1:], value))


def _store_entry(
    doc: ConfigDocument,
    section: str,
    name: str,
    payload: Mapping[str, Any],
) -> ConfigDocument:
    if section == SECTION_SERVERS:
        return doc.with_server(name, ServerEntry.from_payload(payload))
    return doc.with_skill(name, SkillEntry.from_payload(payload))


def _entry_from_value(
    key_path: str,
    value: Any,
    entry_type: type[ServerEntry] | type[SkillEntry],
) -> ServerEntry | SkillEntry:
    if isinstance(value, entry_type):
        return value
    return entry_type.from_payload(_entry_payload(key_path, value))


def _entry_payload(key_path: str, value: Any) -> Mapping[str, Any]:
    if isinstance(value, (ServerEntry, SkillEntry)):
        return value.to_payload()
    if not isinstance(value, Mapping):
        raise _key_path_error(
            key_path,
            f"an entry must be an object, got {type(value).__name__}",
            "pass an object such as {\"enabled\": true}, or address a single field",
        )
    return value


def _set_nested(target: dict[str, Any], parts: Sequence[str], value: Any) -> dict[str, Any]:
    node = target
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = thaw_value(value)
    return target


def _delete_nested(target: dict[str, Any], parts: Sequence[str]) -> None:
    node: Any = target
    for part in parts[:-1]:
        node = node.get(part) if isinstance(node, dict) else None
        if node is None:
            return
    if isinstance(node, dict):
        node.pop(parts[-1], None)


def _as_list(key_path: str, value: Any) -> list[Any]:
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Sequence):
        raise _key_path_error(
            key_path,
            f"expected an array or a string, got {type(value).__name__}",
            "pass a JSON array such as [\"~/projects\"]",
        )
    return list(value)


def _no_nested(key_path: str, rest: Sequence[str]) -> None:
    if rest:
        raise _key_path_error(
            key_path,
            "nested keys are not supported for list sections",
            "assign the whole list instead",
        )


def _key_path_error(key_path: str, message: str, suggestion: str) -> ValidationFailedError:
    return ValidationFailedError(
        ValidationIssue(
            rule_name=RULE_NAME,
            field_path=key_path,
            message=message,
            suggestion=suggestion,
        )
    )
