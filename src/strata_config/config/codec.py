"""
strata-config — document codec.

File: src/strata_config/config/codec.py
Last updated: 2026-10-18

Purpose
- Parse UTF-8 JSON bytes into ``ConfigDocument`` values and serialize them back.

Functional requirements
- Syntax errors carry 1-based line/column; structural errors carry no location.
- Well-known sections must have the right container shape; element-level
  problems are left to the validator.
- Serialization is deterministic: fixed section order, 2-space indent,
  trailing newline.
- ``parse(serialize(doc)) == doc`` including extension fields.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from strata_config.config.document import ConfigDocument, ServerEntry, SkillEntry
from strata_config.constants import (
    JSON_INDENT,
    SECTION_ALLOWED_PATHS,
    SECTION_INSTRUCTIONS,
    SECTION_SERVERS,
    SECTION_SKILLS,
)
from strata_config.errors import ParseError

__all__ = [
    "document_from_payload",
    "parse",
    "serialize",
    "serialize_text",
]


def parse(data: bytes | str) -> ConfigDocument:
    """Parse a document; raises ``ParseError``."""

    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ParseError(f"document is not valid UTF-8 ({exc.reason})") from exc
    else:
        text = data
    if text.startswith("\ufeff"):
        text = text[1:]

    try:
        payload = json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise ParseError(exc.msg, line=exc.lineno, column=exc.colno) from exc
    except ValueError as exc:
        raise ParseError(str(exc)) from exc

    return document_from_payload(payload)


def document_from_payload(payload: object) -> ConfigDocument:
    """Build a document from an already-decoded value tree (JSON or YAML)."""

    if not isinstance(payload, Mapping):
        raise ParseError(f"top-level value must be an object, got {_type_name(payload)}")

    servers = _entries(payload, SECTION_SERVERS, ServerEntry)
    skills = _entries(payload, SECTION_SKILLS, SkillEntry)
    allowed_paths = _sequence(payload, SECTION_ALLOWED_PATHS)
    instructions = _sequence(payload, SECTION_INSTRUCTIONS)

    extensions: dict[str, Any] = {}
    for key, value in payload.items():
        if not isinstance(key, str):
            raise ParseError(f"object keys must be strings, got {_type_name(key)}")
        if key in (SECTION_SERVERS, SECTION_SKILLS, SECTION_ALLOWED_PATHS, SECTION_INSTRUCTIONS):
            continue
        extensions[key] = value

    return ConfigDocument(
        servers=servers,
        allowed_paths=allowed_paths,
        skills=skills,
        custom_instructions=instructions,
        extensions=extensions,
    )


def serialize(doc: ConfigDocument) -> bytes:
    """Serialize ``doc`` as UTF-8 bytes."""

    return serialize_text(doc).encode("utf-8")


def serialize_text(doc: ConfigDocument) -> str:
    rendered = json.dumps(
        doc.to_payload(),
        indent=JSON_INDENT,
        ensure_ascii=False,
        allow_nan=False,
    )
    return rendered + "\n"


def _entries(
    payload: Mapping[str, object],
    section: str,
    entry_type: type[ServerEntry] | type[SkillEntry],
) -> dict[str, Any] | None:
    if section not in payload:
        return None
    raw = payload[section]
    if not isinstance(raw, Mapping):
        raise ParseError(f"{section} must be an object, got {_type_name(raw)}")
    out: dict[str, Any] = {}
    for name, entry in raw.items():
        if not isinstance(entry, Mapping):
            raise ParseError(f"{section}.{name} must be an object, got {_type_name(entry)}")
        out[str(name)] = entry_type.from_payload(entry)
    return out


def _sequence(payload: Mapping[str, object], section: str) -> tuple[object, ...] | None:
    if section not in payload:
        return None
    raw = payload[section]
    if not isinstance(raw, (list, tuple)):
        raise ParseError(f"{section} must be an array, got {_type_name(raw)}")
    return tuple(raw)


def _reject_constant(name: str) -> float:
    raise ValueError(f"non-finite number {name} is not allowed")


def _type_name(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    if isinstance(value, Mapping):
        return "object"
    return type(value).__name__
