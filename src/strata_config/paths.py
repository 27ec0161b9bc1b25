"""
strata-config — path resolution and project discovery.

File: src/strata_config/paths.py
Last updated: 2026-10-18

Purpose
- Compute the platform-specific global document location.
- Discover the nearest project document by walking upward from a directory.

Functional requirements
- ``global_config_path`` never raises; unresolvable homes keep a literal ``~``.
- Upward search stops at a version-control boundary or the filesystem root.
- Absence of a project document is a normal ``None`` result.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from pathlib import Path

from strata_config.constants import (
    BACKUP_DIRNAME,
    CONFIG_FILENAME,
    GLOBAL_CONFIG_DIRNAME,
    GLOBAL_CONFIG_DIRNAME_MACOS,
    PROJECT_CONFIG_DIRNAME,
    SETTINGS_FILENAME,
    VCS_BOUNDARY_MARKERS,
)

PathLike = str | os.PathLike[str]

__all__ = [
    "default_backup_dir",
    "default_settings_path",
    "expand_home",
    "find_project_config",
    "find_project_root",
    "global_config_dir",
    "global_config_path",
    "project_config_path",
]


def global_config_dir(
    *,
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """
    Return the directory holding the global document.

    - Windows: ``%APPDATA%\\claude``
    - macOS: ``~/Library/Application Support/Claude``
    - other: ``${XDG_CONFIG_HOME:-~/.config}/claude``
    """

    selected = sys.platform if platform is None else platform
    env = os.environ if environ is None else environ
    home = _home_dir(env)

    if selected.startswith("win"):
        appdata = env.get("APPDATA", "").strip()
        base = Path(appdata) if appdata else home / "AppData" / "Roaming"
        return base / GLOBAL_CONFIG_DIRNAME
    if selected == "darwin":
        return home / "Library" / "Application Support" / GLOBAL_CONFIG_DIRNAME_MACOS

    xdg = env.get("XDG_CONFIG_HOME", "").strip()
    base = Path(xdg) if xdg and Path(xdg).is_absolute() else home / ".config"
    return base / GLOBAL_CONFIG_DIRNAME


def global_config_path(
    *,
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Return ``<global config dir>/config.json``."""

    return global_config_dir(platform=platform, environ=environ) / CONFIG_FILENAME


def default_backup_dir(
    *,
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    return global_config_dir(platform=platform, environ=environ) / BACKUP_DIRNAME


def default_settings_path(
    *,
    platform: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    return global_config_dir(platform=platform, environ=environ) / SETTINGS_FILENAME


def project_config_path(project_root: PathLike) -> Path:
    """Return the scoped document location under ``project_root``."""

    return Path(project_root) / PROJECT_CONFIG_DIRNAME / CONFIG_FILENAME


def find_project_config(start_dir: PathLike | None = None) -> Path | None:
    """
    Walk upward from ``start_dir`` (default: cwd) looking for ``.claude/config.json``.

    Each level is checked for the document before the boundary markers, so a
    repository root that carries its own document is still found.
    """

    try:
        current = Path.cwd() if start_dir is None else Path(start_dir)
        current = current.expanduser().absolute()
    except OSError:
        return None

    while True:
        candidate = project_config_path(current)
        if candidate.is_file():
            return candidate

        if any((current / marker).exists() for marker in VCS_BOUNDARY_MARKERS):
            return None

        parent = current.parent
        if parent == current:
            return None
        current = parent


def find_project_root(start_dir: PathLike | None = None) -> Path | None:
    """Return the directory owning the discovered project document."""

    found = find_project_config(start_dir)
    if found is None:
        return None
    return found.parent.parent


def expand_home(path: PathLike, *, environ: Mapping[str, str] | None = None) -> Path:
    """
    Replace a leading ``~`` with the home directory.

    Only a bare ``~`` or ``~`` followed by a separator is recognized;
    ``~user`` and every other token pass through unchanged.
    """

    text = os.fspath(path)
    if text == "~":
        return _home_dir(os.environ if environ is None else environ)
    if text.startswith(("~/", "~\\")):
        home = _home_dir(os.environ if environ is None else environ)
        rest = text[2:].lstrip("/\\")
        return home / rest if rest else home
    return Path(text)


def _home_dir(environ: Mapping[str, str]) -> Path:
    for key in ("HOME", "USERPROFILE"):
        value = environ.get(key, "").strip()
        if value:
            return Path(value)
    try:
        return Path.home()
    except (RuntimeError, KeyError, OSError):
        return Path("~")
