"""Stable constants shared across the config layers."""

from __future__ import annotations

from typing import Final

# Document locations.
GLOBAL_CONFIG_DIRNAME: Final[str] = "claude"
GLOBAL_CONFIG_DIRNAME_MACOS: Final[str] = "Claude"
CONFIG_FILENAME: Final[str] = "config.json"
PROJECT_CONFIG_DIRNAME: Final[str] = ".claude"
BACKUP_DIRNAME: Final[str] = "backups"
SETTINGS_FILENAME: Final[str] = "strata.toml"

# Upward project discovery stops at any of these.
VCS_BOUNDARY_MARKERS: Final[tuple[str, ...]] = (".git", ".hg", ".svn")

# Well-known top-level sections, in serialization order.
SECTION_SERVERS: Final[str] = "mcpServers"
SECTION_ALLOWED_PATHS: Final[str] = "allowedPaths"
SECTION_SKILLS: Final[str] = "skills"
SECTION_INSTRUCTIONS: Final[str] = "customInstructions"
KNOWN_SECTIONS: Final[tuple[str, ...]] = (
    SECTION_SERVERS,
    SECTION_ALLOWED_PATHS,
    SECTION_SKILLS,
    SECTION_INSTRUCTIONS,
)
MAP_SECTIONS: Final[frozenset[str]] = frozenset({SECTION_SERVERS, SECTION_SKILLS})
SEQUENCE_SECTIONS: Final[frozenset[str]] = frozenset(
    {SECTION_ALLOWED_PATHS, SECTION_INSTRUCTIONS}
)

# Backups.
DEFAULT_BACKUP_RETENTION: Final[int] = 10
BACKUP_TIMESTAMP_FORMAT: Final[str] = "%Y%m%d_%H%M%S.%f"
BACKUP_ORIGIN_MARKER: Final[str] = "origin"
BACKUP_SOURCE_KEY_LENGTH: Final[int] = 16

# Serialization.
JSON_INDENT: Final[int] = 2

__all__ = [
    "BACKUP_DIRNAME",
    "BACKUP_ORIGIN_MARKER",
    "BACKUP_SOURCE_KEY_LENGTH",
    "BACKUP_TIMESTAMP_FORMAT",
    "CONFIG_FILENAME",
    "DEFAULT_BACKUP_RETENTION",
    "GLOBAL_CONFIG_DIRNAME",
    "GLOBAL_CONFIG_DIRNAME_MACOS",
    "JSON_INDENT",
    "KNOWN_SECTIONS",
    "MAP_SECTIONS",
    "PROJECT_CONFIG_DIRNAME",
    "SECTION_ALLOWED_PATHS",
    "SECTION_INSTRUCTIONS",
    "SECTION_SERVERS",
    "SECTION_SKILLS",
    "SEQUENCE_SECTIONS",
    "SETTINGS_FILENAME",
    "VCS_BOUNDARY_MARKERS",
]
