"""
strata-config — immutable configuration document model.

File: src/strata_config/config/document.py
Last updated: 2026-10-18

Purpose
- Define ``ConfigDocument`` and its entry types as frozen values.
- Provide pure ``with_*`` transformations that return new documents.

What should be included in this file
- Deep-freeze/thaw helpers for opaque JSON value trees.
- Scope enum, backup record and source map value types.

Functional requirements
- "Section absent" (``None``) and "section present but empty" stay distinct.
- Fields outside the recognized schema live in ordered extension mappings
  (top-level and per entry) and are never dropped.
- Element types are not enforced here; the validator owns those checks.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Final

from strata_config.constants import (
    KNOWN_SECTIONS,
    SECTION_ALLOWED_PATHS,
    SECTION_INSTRUCTIONS,
    SECTION_SERVERS,
    SECTION_SKILLS,
)

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_SERVER_FIELDS: Final[tuple[str, ...]] = ("enabled", "command", "args", "env")
_SKILL_FIELDS: Final[tuple[str, ...]] = ("enabled", "parameters")
_SERVER_NULLABLE: Final[tuple[str, ...]] = ("command", "args", "env")
_SKILL_NULLABLE: Final[tuple[str, ...]] = ("parameters",)

__all__ = [
    "EMPTY_DOCUMENT",
    "BackupRecord",
    "ConfigDocument",
    "ConfigScope",
    "JSONValue",
    "ServerEntry",
    "SkillEntry",
    "SourceMap",
    "freeze_value",
    "thaw_value",
]


class ConfigScope(StrEnum):
    """One level of the configuration hierarchy, in merge order."""

    GLOBAL = "global"
    PROJECT = "project"
    SESSION = "session"

    @property
    def persisted(self) -> bool:
        return self is not ConfigScope.SESSION

    def layers(self) -> tuple[ConfigScope, ...]:
        """Return the scopes folded together to build this scope's effective view."""

        order = tuple(ConfigScope)
        return order[: order.index(self) + 1]


def freeze_value(value: object) -> object:
    """Return a read-only deep copy: mappings become proxies, sequences tuples."""

    if isinstance(value, Mapping):
        return MappingProxyType({str(key): freeze_value(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(item) for item in value)
    return value


def thaw_value(value: object) -> Any:
    """Inverse of ``freeze_value``: plain ``dict``/``list`` JSON structures."""

    if isinstance(value, Mapping):
        return {key: thaw_value(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [thaw_value(item) for item in value]
    return value


def _frozen_mapping(value: Mapping[str, object] | None) -> Mapping[str, Any]:
    if value is None:
        return MappingProxyType({})
    frozen = freeze_value(value)
    assert isinstance(frozen, Mapping)
    return frozen


def _reject_reserved(extra: Mapping[str, object], reserved: Sequence[str], owner: str) -> None:
    clashes = sorted(key for key in extra if key in reserved)
    if clashes:
        raise ValueError(f"{owner} extension fields shadow known fields: {', '.join(clashes)}")


@dataclass(frozen=True, slots=True)
class ServerEntry:
    """
    One tool-server entry. ``None`` marks an absent optional field.

    ``explicit_nulls`` names optional fields the source wrote as ``null`` so
    they are written back as ``null`` instead of being dropped.
    """

    enabled: bool | None = True
    command: str | None = None
    args: tuple[str, ...] | None = None
    env: Mapping[str, str] | None = None
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    explicit_nulls: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if self.args is not None:
            object.__setattr__(self, "args", freeze_value(self.args))
        if self.env is not None:
            object.__setattr__(self, "env", freeze_value(self.env))
        extra = _frozen_mapping(self.extra)
        _reject_reserved(extra, _SERVER_FIELDS, "server")
        object.__setattr__(self, "extra", extra)
        object.__setattr__(
            self, "explicit_nulls", _still_null(self, self.explicit_nulls, _SERVER_NULLABLE)
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> ServerEntry:
        args = payload.get("args")
        env = payload.get("env")
        return cls(
            enabled=payload.get("enabled"),  # type: ignore[arg-type]
            command=payload.get("command"),  # type: ignore[arg-type]
            args=args,  # type: ignore[arg-type]
            env=env,  # type: ignore[arg-type]
            extra={key: value for key, value in payload.items() if key not in _SERVER_FIELDS},
            explicit_nulls=_null_fields(payload, _SERVER_NULLABLE),
        )

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.enabled is not None:
            out["enabled"] = self.enabled
        for name in _SERVER_NULLABLE:
            value = getattr(self, name)
            if value is not None:
                out[name] = thaw_value(value)
            elif name in self.explicit_nulls:
                out[name] = None
        for key, value in self.extra.items():
            out[key] = thaw_value(value)
        return out

    def with_enabled(self, enabled: bool) -> ServerEntry:
        return dataclasses.replace(self, enabled=enabled)


@dataclass(frozen=True, slots=True)
class SkillEntry:
    """One skill entry; ``parameters`` is an opaque value tree."""

    enabled: bool | None = True
    parameters: Any = None
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    explicit_nulls: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "parameters", freeze_value(self.parameters))
        extra = _frozen_mapping(self.extra)
        _reject_reserved(extra, _SKILL_FIELDS, "skill")
        object.__setattr__(self, "extra", extra)
        object.__setattr__(
            self, "explicit_nulls", _still_null(self, self.explicit_nulls, _SKILL_NULLABLE)
        )

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> SkillEntry:
        return cls(
            enabled=payload.get("enabled"),  # type: ignore[arg-type]
            parameters=payload.get("parameters"),
            extra={key: value for key, value in payload.items() if key not in _SKILL_FIELDS},
            explicit_nulls=_null_fields(payload, _SKILL_NULLABLE),
        )

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.enabled is not None:
            out["enabled"] = self.enabled
        if self.parameters is not None:
            out["parameters"] = thaw_value(self.parameters)
        elif "parameters" in self.explicit_nulls:
            out["parameters"] = None
        for key, value in self.extra.items():
            out[key] = thaw_value(value)
        return out

    def with_enabled(self, enabled: bool) -> SkillEntry:
        return dataclasses.replace(self, enabled=enabled)


def _null_fields(payload: Mapping[str, object], names: Sequence[str]) -> frozenset[str]:
    return frozenset(name for name in names if name in payload and payload[name] is None)


def _still_null(entry: object, names: frozenset[str], nullable: Sequence[str]) -> frozenset[str]:
    # A field that now holds a value is no longer an explicit null.
    return frozenset(
        name for name in names if name in nullable and getattr(entry, name) is None
    )


def _coerce_entries(
    entries: Mapping[str, object] | None,
    entry_type: type[ServerEntry] | type[SkillEntry],
) -> Mapping[str, Any] | None:
    if entries is None:
        return None
    out: dict[str, Any] = {}
    for name, entry in entries.items():
        if isinstance(entry, entry_type):
            out[str(name)] = entry
        elif isinstance(entry, Mapping):
            out[str(name)] = entry_type.from_payload(entry)
        else:
            raise TypeError(
                f"{entry_type.__name__} expected for {name!r}, got {type(entry).__name__}"
            )
    return MappingProxyType(out)


@dataclass(frozen=True, slots=True)
class ConfigDocument:
    """
    A parsed configuration layer.

    Instances are never mutated; every ``with_*``/``without_*`` call returns a
    new document sharing the untouched sections.
    """

    servers: Mapping[str, ServerEntry] | None = None
    allowed_paths: tuple[str, ...] | None = None
    skills: Mapping[str, SkillEntry] | None = None
    custom_instructions: tuple[str, ...] | None = None
    extensions: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        object.__setattr__(self, "servers", _coerce_entries(self.servers, ServerEntry))
        object.__setattr__(self, "skills", _coerce_entries(self.skills, SkillEntry))
        if self.allowed_paths is not None:
            object.__setattr__(self, "allowed_paths", freeze_value(self.allowed_paths))
        if self.custom_instructions is not None:
            object.__setattr__(
                self, "custom_instructions", freeze_value(self.custom_instructions)
            )
        extensions = _frozen_mapping(self.extensions)
        _reject_reserved(extensions, KNOWN_SECTIONS, "document")
        object.__setattr__(self, "extensions", extensions)

    # -- inspection -------------------------------------------------------

    def is_empty(self) -> bool:
        return (
            self.servers is None
            and self.allowed_paths is None
            and self.skills is None
            and self.custom_instructions is None
            and not self.extensions
        )

    def section(self, name: str) -> Any:
        """Return the value of a known section or extension field (``None`` if absent)."""

        if name == SECTION_SERVERS:
            return self.servers
        if name == SECTION_ALLOWED_PATHS:
            return self.allowed_paths
        if name == SECTION_SKILLS:
            return self.skills
        if name == SECTION_INSTRUCTIONS:
            return self.custom_instructions
        return self.extensions.get(name)

    def has_section(self, name: str) -> bool:
        if name in KNOWN_SECTIONS:
            return self.section(name) is not None
        return name in self.extensions

    def iter_sections(self) -> Iterator[tuple[str, Any]]:
        """Yield present sections in serialization order."""

        for name in KNOWN_SECTIONS:
            value = self.section(name)
            if value is not None:
                yield name, value
        yield from self.extensions.items()

    def to_payload(self) -> dict[str, Any]:
        """Return a plain JSON-compatible mapping in serialization order."""

        out: dict[str, Any] = {}
        for name, value in self.iter_sections():
            if name in (SECTION_SERVERS, SECTION_SKILLS):
                out[name] = {key: entry.to_payload() for key, entry in value.items()}
            else:
                out[name] = thaw_value(value)
        return out

    # -- transformations --------------------------------------------------

    def with_server(self, name: str, entry: ServerEntry) -> ConfigDocument:
        servers = dict(self.servers or {})
        servers[name] = entry
        return dataclasses.replace(self, servers=servers)

    def without_server(self, name: str) -> ConfigDocument:
        servers = dict(self.servers or {})
        servers.pop(name, None)
        return dataclasses.replace(self, servers=servers)

    def with_servers(self, servers: Mapping[str, ServerEntry] | None) -> ConfigDocument:
        return dataclasses.replace(self, servers=servers)

    def with_skill(self, name: str, entry: SkillEntry) -> ConfigDocument:
        skills = dict(self.skills or {})
        skills[name] = entry
        return dataclasses.replace(self, skills=skills)

    def without_skill(self, name: str) -> ConfigDocument:
        skills = dict(self.skills or {})
        skills.pop(name, None)
        return dataclasses.replace(self, skills=skills)

    def with_skills(self, skills: Mapping[str, SkillEntry] | None) -> ConfigDocument:
        return dataclasses.replace(self, skills=skills)

    def with_allowed_paths(self, paths: Sequence[str] | None) -> ConfigDocument:
        return dataclasses.replace(
            self, allowed_paths=None if paths is None else tuple(paths)
        )

    def with_custom_instructions(self, items: Sequence[str] | None) -> ConfigDocument:
        return dataclasses.replace(
            self, custom_instructions=None if items is None else tuple(items)
        )

    def with_extension(self, name: str, value: object) -> ConfigDocument:
        extensions = dict(self.extensions)
        extensions[name] = value
        return dataclasses.replace(self, extensions=extensions)

    def without_extension(self, name: str) -> ConfigDocument:
        extensions = dict(self.extensions)
        extensions.pop(name, None)
        return dataclasses.replace(self, extensions=extensions)

    def with_section(self, name: str, value: Any) -> ConfigDocument:
        """Replace (or clear with ``None``) any section by its serialized name."""

        if name == SECTION_SERVERS:
            return self.with_servers(value)
        if name == SECTION_SKILLS:
            return self.with_skills(value)
        if name == SECTION_ALLOWED_PATHS:
            return self.with_allowed_paths(value)
        if name == SECTION_INSTRUCTIONS:
            return self.with_custom_instructions(value)
        if value is None:
            return self.without_extension(name)
        return self.with_extension(name, value)


EMPTY_DOCUMENT: Final[ConfigDocument] = ConfigDocument()


@dataclass(frozen=True, slots=True)
class BackupRecord:
    """A snapshot taken before a document was overwritten."""

    path: Path
    origin_path: Path
    created_at: datetime
    size: int
    sequence: int = 0

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.created_at, self.sequence)

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path.as_posix(),
            "origin_path": self.origin_path.as_posix(),
            "created_at": self.created_at.isoformat(),
            "size": self.size,
        }


class SourceMap(Mapping[str, ConfigScope]):
    """Read-only key-path → scope mapping produced by a traced merge."""

    __slots__ = ("_sources",)

    def __init__(self, sources: Mapping[str, ConfigScope] | None = None) -> None:
        self._sources: dict[str, ConfigScope] = dict(sorted((sources or {}).items()))

    def __getitem__(self, key_path: str) -> ConfigScope:
        return self._sources[key_path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def __repr__(self) -> str:
        return f"SourceMap({self._sources!r})"

    def paths_from(self, scope: ConfigScope) -> tuple[str, ...]:
        return tuple(path for path, source in self._sources.items() if source is scope)

    def to_dict(self) -> dict[str, str]:
        return {path: scope.value for path, scope in self._sources.items()}
