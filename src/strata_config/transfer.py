"""
strata-config — document import and export.

File: src/strata_config/transfer.py
Last updated: 2026-10-18

Purpose
- Move one configuration layer to and from JSON or YAML files.

Functional requirements
- Format is taken from an explicit argument or the file extension.
- Imported payloads pass the same shape checks as documents read from disk
  and, by default, the validator.
- Exports are written atomically.
"""

from __future__ import annotations

import json
import os
from enum import StrEnum
from pathlib import Path
from typing import Any, Final

import yaml

from strata_config.config.codec import document_from_payload, parse, serialize
from strata_config.config.document import ConfigDocument
from strata_config.config.validation import ValidationIssue, assert_valid
from strata_config.errors import NotFoundError, ParseError, ValidationFailedError
from strata_config.utils.fs import read_bytes, write_atomic

PathLike = str | os.PathLike[str]

RULE_NAME: Final[str] = "transfer-format"


class TransferFormat(StrEnum):
    JSON = "json"
    YAML = "yaml"


_EXTENSIONS: Final[dict[str, TransferFormat]] = {
    ".json": TransferFormat.JSON,
    ".yaml": TransferFormat.YAML,
    ".yml": TransferFormat.YAML,
}

__all__ = [
    "RULE_NAME",
    "TransferFormat",
    "detect_format",
    "dump_document",
    "export_document",
    "import_document",
    "load_document",
]


def detect_format(path: PathLike, fmt: TransferFormat | str | None = None) -> TransferFormat:
    """Resolve the transfer format from ``fmt`` or the extension of ``path``."""

    if fmt is not None:
        try:
            return TransferFormat(str(fmt).strip().lower())
        except ValueError:
            raise _format_error(str(path), f"unsupported format {fmt!r}") from None

    suffix = Path(path).suffix.lower()
    detected = _EXTENSIONS.get(suffix)
    if detected is None:
        raise _format_error(
            str(path),
            f"cannot infer format from extension {suffix or '(none)'!r}",
        )
    return detected


def dump_document(doc: ConfigDocument, fmt: TransferFormat) -> bytes:
    """Render ``doc`` in ``fmt``."""

    if fmt is TransferFormat.JSON:
        return serialize(doc)
    rendered = yaml.safe_dump(
        doc.to_payload(),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )
    return rendered.encode("utf-8")


def load_document(data: bytes, fmt: TransferFormat) -> ConfigDocument:
    """Parse ``data`` in ``fmt`` into a document (no validation)."""

    if fmt is TransferFormat.JSON:
        return parse(data)

    try:
        payload = yaml.safe_load(data.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ParseError(f"invalid UTF-8: {exc.reason}") from exc
    except yaml.YAMLError as exc:
        mark = getattr(exc, "problem_mark", None)
        if mark is not None:
            raise ParseError(str(exc), line=mark.line + 1, column=mark.column + 1) from exc
        raise ParseError(str(exc)) from exc

    _ensure_json_compatible(payload)
    return document_from_payload(payload)


def export_document(
    doc: ConfigDocument,
    path: PathLike,
    fmt: TransferFormat | str | None = None,
) -> Path:
    """Write ``doc`` to ``path`` atomically and return the path."""

    target = Path(path)
    selected = detect_format(target, fmt)
    write_atomic(target, dump_document(doc, selected))
    return target


def import_document(
    path: PathLike,
    fmt: TransferFormat | str | None = None,
    *,
    validate: bool = True,
) -> ConfigDocument:
    """Read a document from ``path``; validated unless ``validate`` is false."""

    source = Path(path)
    selected = detect_format(source, fmt)
    if not source.is_file():
        raise NotFoundError(source, suggestion="check the path of the file to import")
    data = read_bytes(source, operation="read import file")
    try:
        doc = load_document(data, selected)
    except ParseError as exc:
        raise exc.with_path(source) from exc
    if validate:
        assert_valid(doc)
    return doc


def _ensure_json_compatible(payload: Any) -> None:
    # YAML can produce dates, sets and non-string keys.
    try:
        json.dumps(payload, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise ParseError(f"value is not representable as JSON: {exc}") from exc


def _format_error(path: str, message: str) -> ValidationFailedError:
    return ValidationFailedError(
        ValidationIssue(
            rule_name=RULE_NAME,
            field_path=path,
            message=message,
            suggestion="use a .json, .yaml or .yml file, or name the format explicitly",
        )
    )
