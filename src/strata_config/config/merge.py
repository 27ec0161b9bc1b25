"""
strata-config — layer merge engine.

File: src/strata_config/config/merge.py
Last updated: 2026-10-18

Purpose
- Fold configuration layers into an effective document with source attribution.

Functional requirements
- Map sections (``mcpServers``, ``skills``, extension fields): key union with
  entry-level replace; keys only in ``base`` are kept unchanged.
- Sequence sections (``allowedPaths``, ``customInstructions``): the override
  replaces when present (even when empty), otherwise ``base`` is inherited.
- Pure and left-associative: ``merge_layers(a, b, c) == merge(merge(a, b), c)``.

Non-functional requirements
- No hidden state; output depends only on the inputs and their order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from strata_config.config.document import (
    EMPTY_DOCUMENT,
    ConfigDocument,
    ConfigScope,
    SourceMap,
    thaw_value,
)
from strata_config.constants import MAP_SECTIONS, SEQUENCE_SECTIONS

Owner = tuple[str, ...]

__all__ = [
    "leaf_paths",
    "merge",
    "merge_layers",
    "merge_layers_with_trace",
    "merge_with_trace",
]


def merge(base: ConfigDocument, override: ConfigDocument) -> ConfigDocument:
    """Return the effective document of ``override`` layered on ``base``."""

    return ConfigDocument(
        servers=_merge_entries(base.servers, override.servers),
        allowed_paths=_replace_or_inherit(base.allowed_paths, override.allowed_paths),
        skills=_merge_entries(base.skills, override.skills),
        custom_instructions=_replace_or_inherit(
            base.custom_instructions, override.custom_instructions
        ),
        extensions=_merge_entries(base.extensions, override.extensions) or {},
    )


def merge_layers(*layers: ConfigDocument) -> ConfigDocument:
    """Left fold of ``merge`` over ``layers``; no layers yields the empty document."""

    result = EMPTY_DOCUMENT
    for layer in layers:
        result = merge(result, layer)
    return result


def merge_with_trace(
    base: ConfigDocument,
    override: ConfigDocument,
    base_scope: ConfigScope,
    override_scope: ConfigScope,
    *,
    base_sources: Mapping[str, ConfigScope] | None = None,
) -> tuple[ConfigDocument, SourceMap]:
    """
    Merge and record, for every leaf key-path of the result, the scope that
    supplied its value.

    ``base_sources`` carries attribution from earlier folds so chained merges
    keep the scope that originally contributed a value.
    """

    merged = merge(base, override)
    supplied = _supplied_owners(override)
    prior: Mapping[str, ConfigScope]
    if base_sources is None:
        prior = {path: base_scope for path in leaf_paths(base)}
    else:
        prior = base_sources

    sources: dict[str, ConfigScope] = {}
    for owner, path, _value in _owned_leaves(merged):
        if owner in supplied:
            sources[path] = override_scope
        else:
            sources[path] = prior.get(path, base_scope)
    return merged, SourceMap(sources)


def merge_layers_with_trace(
    layers: Sequence[tuple[ConfigScope, ConfigDocument]],
) -> tuple[ConfigDocument, SourceMap]:
    """Traced left fold over ``(scope, document)`` pairs in hierarchy order."""

    if not layers:
        return EMPTY_DOCUMENT, SourceMap()

    first_scope, result = layers[0]
    sources = SourceMap({path: first_scope for path in leaf_paths(result)})
    previous_scope = first_scope
    for scope, layer in layers[1:]:
        result, sources = merge_with_trace(
            result, layer, previous_scope, scope, base_sources=sources
        )
        previous_scope = scope
    return result, sources


def leaf_paths(doc: ConfigDocument) -> dict[str, Any]:
    """
    Flatten ``doc`` into dotted leaf key-paths.

    Sequences and empty mappings are leaves; entry fields and nested
    mappings are expanded.
    """

    return {path: value for _owner, path, value in _owned_leaves(doc)}


def _merge_entries(
    base: Mapping[str, Any] | None,
    override: Mapping[str, Any] | None,
) -> dict[str, Any] | None:
    if override is None:
        return None if base is None else dict(base)
    merged: dict[str, Any] = dict(base or {})
    for key, entry in override.items():
        merged[key] = entry
    return merged


def _replace_or_inherit(base: Any, override: Any) -> Any:
    return base if override is None else override


def _supplied_owners(doc: ConfigDocument) -> set[Owner]:
    owners: set[Owner] = set()
    for section in MAP_SECTIONS:
        entries = doc.section(section)
        if entries is None:
            continue
        owners.add((section,))
        owners.update((section, name) for name in entries)
    for section in SEQUENCE_SECTIONS:
        if doc.section(section) is not None:
            owners.add((section,))
    owners.update((key,) for key in doc.extensions)
    return owners


def _owned_leaves(doc: ConfigDocument) -> list[tuple[Owner, str, Any]]:
    leaves: list[tuple[Owner, str, Any]] = []
    for section, value in doc.iter_sections():
        if section in MAP_SECTIONS:
            if not value:
                leaves.append(((section,), section, {}))
                continue
            for name, entry in value.items():
                owner = (section, name)
                for path, leaf in _flatten(f"{section}.{name}", entry.to_payload()):
                    leaves.append((owner, path, leaf))
        elif section in SEQUENCE_SECTIONS:
            leaves.append(((section,), section, thaw_value(value)))
        else:
            for path, leaf in _flatten(section, thaw_value(value)):
                leaves.append(((section,), path, leaf))
    return leaves


def _flatten(prefix: str, value: Any) -> list[tuple[str, Any]]:
    if isinstance(value, Mapping) and value:
        out: list[tuple[str, Any]] = []
        for key, item in value.items():
            out.extend(_flatten(f"{prefix}.{key}", item))
        return out
    return [(prefix, value)]
