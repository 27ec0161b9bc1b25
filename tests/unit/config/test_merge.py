"""
strata-config — unit tests for the layer merge engine

File: tests/unit/config/test_merge.py
Last updated: 2026-10-18

Purpose
- Validate deep-merge and replace-or-inherit semantics and source attribution.

What this test file should cover
- Identity with the empty document on either side.
- Key union with entry-level replace for map sections.
- Explicit empty sequences overriding inherited values.
- Left-associative folding and per-leaf source attribution.

Non-functional requirements
- Deterministic property tests (derandomized hypothesis).
"""

from __future__ import annotations

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from strata_config.config.document import (
    EMPTY_DOCUMENT,
    ConfigDocument,
    ConfigScope,
    ServerEntry,
    SkillEntry,
)
from strata_config.config.merge import (
    leaf_paths,
    merge,
    merge_layers,
    merge_layers_with_trace,
    merge_with_trace,
)

_NAMES = st.sampled_from(["npx", "uvx", "git", "fs", "web"])
_SERVERS = st.builds(
    ServerEntry,
    enabled=st.booleans(),
    command=st.one_of(st.none(), st.sampled_from(["npx", "uvx"])),
    args=st.one_of(st.none(), st.lists(st.sampled_from(["-y", "--x"]), max_size=2).map(tuple)),
)
_SKILLS = st.builds(SkillEntry, enabled=st.booleans())
_PATHS = st.one_of(st.none(), st.lists(st.sampled_from(["~/a", "~/b", "/tmp"]), max_size=3))
_EXT_KEYS = st.sampled_from(["theme", "ui", "telemetry"])
_DOCUMENTS = st.builds(
    ConfigDocument,
    servers=st.one_of(st.none(), st.dictionaries(_NAMES, _SERVERS, max_size=3)),
    allowed_paths=_PATHS,
    skills=st.one_of(st.none(), st.dictionaries(_NAMES, _SKILLS, max_size=2)),
    custom_instructions=_PATHS,
    extensions=st.dictionaries(
        _EXT_KEYS, st.one_of(st.booleans(), st.integers(0, 3)), max_size=2
    ),
)
_SETTINGS = settings(
    max_examples=50,
    derandomize=True,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)


@_SETTINGS
@given(doc=_DOCUMENTS)
def test_empty_document_is_identity_on_both_sides(doc: ConfigDocument) -> None:
    assert merge(doc, EMPTY_DOCUMENT) == doc
    assert merge(EMPTY_DOCUMENT, doc) == doc


@_SETTINGS
@given(base=_DOCUMENTS, override=_DOCUMENTS)
def test_map_sections_union_with_entry_level_replace(
    base: ConfigDocument, override: ConfigDocument
) -> None:
    merged = merge(base, override)

    if override.servers is None:
        assert merged.servers == base.servers
        return
    assert merged.servers is not None
    assert set(merged.servers) == set(base.servers or {}) | set(override.servers)
    for name, entry in override.servers.items():
        assert merged.servers[name] == entry
    for name, entry in (base.servers or {}).items():
        if name not in override.servers:
            assert merged.servers[name] == entry


@_SETTINGS
@given(base=_DOCUMENTS, override=_DOCUMENTS)
def test_sequences_replace_or_inherit(base: ConfigDocument, override: ConfigDocument) -> None:
    merged = merge(base, override)

    expected = base.allowed_paths if override.allowed_paths is None else override.allowed_paths
    assert merged.allowed_paths == expected


@_SETTINGS
@given(base=_DOCUMENTS)
def test_explicit_empty_sequence_overrides(base: ConfigDocument) -> None:
    merged = merge(base, ConfigDocument(allowed_paths=(), custom_instructions=()))

    assert merged.allowed_paths == ()
    assert merged.custom_instructions == ()


@_SETTINGS
@given(a=_DOCUMENTS, b=_DOCUMENTS, c=_DOCUMENTS)
def test_merge_is_left_associative_fold(
    a: ConfigDocument, b: ConfigDocument, c: ConfigDocument
) -> None:
    folded = merge_layers(a, b, c)

    assert folded == merge(merge(a, b), c)
    assert folded == merge(a, merge(b, c))
    assert merge_layers(a, b, c) == folded


def test_merge_layers_without_input_is_empty() -> None:
    assert merge_layers() == EMPTY_DOCUMENT


def test_entry_level_replace_drops_base_fields() -> None:
    base = ConfigDocument(servers={"npx": ServerEntry(enabled=True, args=("-y",))})
    override = ConfigDocument(servers={"npx": ServerEntry(enabled=False)})

    merged = merge(base, override)

    assert (merged.servers or {})["npx"] == ServerEntry(enabled=False)
    assert (merged.servers or {})["npx"].to_payload() == {"enabled": False}


def test_extension_bag_merges_by_key() -> None:
    base = ConfigDocument(extensions={"theme": "dark", "ui": {"size": 1}})
    override = ConfigDocument(extensions={"ui": {"font": "mono"}})

    merged = merge(base, override)

    assert merged.to_payload() == {"theme": "dark", "ui": {"font": "mono"}}


def test_merge_with_trace_attributes_each_leaf() -> None:
    global_doc = ConfigDocument(
        servers={"npx": ServerEntry(enabled=True, args=("-y",))},
        allowed_paths=("~/a",),
    )
    project_doc = ConfigDocument(
        servers={"uvx": ServerEntry(enabled=True)},
        allowed_paths=(),
    )

    merged, sources = merge_with_trace(
        global_doc, project_doc, ConfigScope.GLOBAL, ConfigScope.PROJECT
    )

    assert list(merged.servers or {}) == ["npx", "uvx"]
    assert sources.to_dict() == {
        "allowedPaths": "project",
        "mcpServers.npx.args": "global",
        "mcpServers.npx.enabled": "global",
        "mcpServers.uvx.enabled": "project",
    }


def test_traced_fold_keeps_earliest_contributor() -> None:
    layers = [
        (ConfigScope.GLOBAL, ConfigDocument(custom_instructions=("g",))),
        (ConfigScope.PROJECT, ConfigDocument(servers={"npx": ServerEntry()})),
        (ConfigScope.SESSION, ConfigDocument(extensions={"theme": "light"})),
    ]

    merged, sources = merge_layers_with_trace(layers)

    assert merged == merge_layers(*(doc for _scope, doc in layers))
    assert sources["customInstructions"] is ConfigScope.GLOBAL
    assert sources["mcpServers.npx.enabled"] is ConfigScope.PROJECT
    assert sources["theme"] is ConfigScope.SESSION


def test_traced_fold_of_nothing() -> None:
    merged, sources = merge_layers_with_trace([])

    assert merged == EMPTY_DOCUMENT
    assert len(sources) == 0


def test_leaf_paths_flatten_entries_and_nested_extensions() -> None:
    doc = ConfigDocument(
        servers={"npx": ServerEntry(enabled=True, env={"A": "1"})},
        skills={},
        allowed_paths=("~/a",),
        extensions={"ui": {"theme": {"color": "dark"}}},
    )

    assert leaf_paths(doc) == {
        "mcpServers.npx.enabled": True,
        "mcpServers.npx.env.A": "1",
        "allowedPaths": ["~/a"],
        "skills": {},
        "ui.theme.color": "dark",
    }


@_SETTINGS
@given(base=_DOCUMENTS, override=_DOCUMENTS)
def test_source_map_covers_exactly_the_merged_leaves(
    base: ConfigDocument, override: ConfigDocument
) -> None:
    merged, sources = merge_with_trace(base, override, ConfigScope.GLOBAL, ConfigScope.PROJECT)

    assert set(sources) == set(leaf_paths(merged))
    # An empty override map section is not a leaf once base entries fill it.
    for path in set(leaf_paths(override)) & set(sources):
        assert sources[path] is ConfigScope.PROJECT
