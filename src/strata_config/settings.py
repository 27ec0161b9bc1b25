"""
strata-config — manager settings loader.

File: src/strata_config/settings.py
Last updated: 2026-10-18

Purpose
- Load the tool's own settings (where documents and backups live, retention,
  logging) from defaults, a TOML file and environment variables.

What should be included in this file
- Precedence logic: env (STRATA_) > file > defaults.
- TOML loading via ``tomllib`` from a ``[strata]`` table.
- Deterministic environment variable mapping and coercion.
- Path normalization relative to the settings file location.

Functional requirements
- An explicitly named settings file must exist; the default one is optional.
- Reject unknown keys and invalid values with ``SettingsError``.

Non-functional requirements
- Keep loading deterministic and reproducible.
"""

from __future__ import annotations

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Literal

from strata_config.constants import DEFAULT_BACKUP_RETENTION
from strata_config.errors import ConfigError
from strata_config.paths import (
    default_backup_dir,
    default_settings_path,
    expand_home,
    global_config_path,
)

ENV_PREFIX: Final[str] = "STRATA_"
SETTINGS_TABLE: Final[str] = "strata"

LogFormat = Literal["json", "console"]

_LOG_LEVELS: Final[frozenset[str]] = frozenset(
    {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"}
)
_LOG_FORMATS: Final[frozenset[str]] = frozenset({"json", "console"})

# settings key -> environment variable suffix
_ENV_BINDINGS: Final[dict[str, str]] = {
    "global_config_path": "GLOBAL_CONFIG",
    "backup_dir": "BACKUP_DIR",
    "backup_retention": "BACKUP_RETENTION",
    "log_level": "LOG_LEVEL",
    "log_format": "LOG_FORMAT",
}
_PATH_KEYS: Final[frozenset[str]] = frozenset({"global_config_path", "backup_dir"})

__all__ = [
    "ENV_PREFIX",
    "ManagerSettings",
    "SettingsError",
    "default_settings",
    "load_settings",
]


class SettingsError(ConfigError):
    """Raised when settings cannot be loaded or a value cannot be coerced."""

    def __init__(self, message: str, *, suggestion: str | None = None) -> None:
        super().__init__(
            message,
            suggestion=suggestion or "fix the value in strata.toml or the STRATA_* variable",
        )


@dataclass(frozen=True, slots=True)
class ManagerSettings:
    """Effective settings for one ``ConfigManager``."""

    global_config_path: Path
    backup_dir: Path
    backup_retention: int = DEFAULT_BACKUP_RETENTION
    log_level: str = "WARNING"
    log_format: LogFormat = "json"
    source_path: Path | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "global_config_path": self.global_config_path.as_posix(),
            "backup_dir": self.backup_dir.as_posix(),
            "backup_retention": self.backup_retention,
            "log_level": self.log_level,
            "log_format": self.log_format,
            "source_path": None if self.source_path is None else self.source_path.as_posix(),
        }


def default_settings(*, environ: Mapping[str, str] | None = None) -> ManagerSettings:
    """Platform defaults without consulting any file or ``STRATA_*`` variable."""

    return ManagerSettings(
        global_config_path=global_config_path(environ=environ),
        backup_dir=default_backup_dir(environ=environ),
    )


def load_settings(
    settings_path: str | os.PathLike[str] | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> ManagerSettings:
    """Load effective settings with deterministic precedence: env > file > defaults."""

    env_map = dict(os.environ if environ is None else environ)
    explicit = settings_path is not None
    resolved = (
        expand_home(settings_path, environ=env_map)
        if settings_path is not None
        else default_settings_path(environ=env_map)
    )

    file_payload = _load_toml_file(resolved, required=explicit)
    values: dict[str, Any] = {}
    for key, raw in file_payload.items():
        values[key] = _coerce(
            key, raw, origin=f"{resolved}: {key}", base_dir=resolved.parent, environ=env_map
        )

    for key, suffix in _ENV_BINDINGS.items():
        env_name = ENV_PREFIX + suffix
        raw = env_map.get(env_name)
        if raw is None or not raw.strip():
            continue
        values[key] = _coerce(key, raw.strip(), origin=env_name, base_dir=None, environ=env_map)

    defaults = default_settings(environ=env_map)
    return ManagerSettings(
        global_config_path=values.get("global_config_path", defaults.global_config_path),
        backup_dir=values.get("backup_dir", defaults.backup_dir),
        backup_retention=values.get("backup_retention", defaults.backup_retention),
        log_level=values.get("log_level", defaults.log_level),
        log_format=values.get("log_format", defaults.log_format),
        source_path=resolved if file_payload or explicit else None,
    )


def _load_toml_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise SettingsError(
                f"settings file not found: {path}",
                suggestion="create the file or drop the explicit settings path",
            )
        return {}

    try:
        with path.open("rb") as handle:
            parsed = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise SettingsError(f"invalid TOML in {path}: {exc}") from exc
    except OSError as exc:
        raise SettingsError(f"unable to read settings file {path}: {exc}") from exc

    table = parsed.get(SETTINGS_TABLE, {})
    if not isinstance(table, dict):
        raise SettingsError(f"[{SETTINGS_TABLE}] must be a table: {path}")

    unknown = sorted(set(table) - set(_ENV_BINDINGS))
    if unknown:
        raise SettingsError(
            f"unknown settings in {path}: {', '.join(unknown)}",
            suggestion=f"supported keys are {', '.join(sorted(_ENV_BINDINGS))}",
        )
    return table


def _coerce(
    key: str,
    raw: object,
    *,
    origin: str,
    base_dir: Path | None,
    environ: Mapping[str, str] | None = None,
) -> object:
    if key in _PATH_KEYS:
        if not isinstance(raw, str) or not raw.strip():
            raise SettingsError(f"{origin} must be a non-empty path string")
        return _normalize_path(raw.strip(), base_dir, environ)

    if key == "backup_retention":
        value: object = raw
        if isinstance(raw, str):
            try:
                value = int(raw)
            except ValueError as exc:
                raise SettingsError(f"{origin} must be an integer") from exc
        if isinstance(value, bool) or not isinstance(value, int):
            raise SettingsError(f"{origin} must be an integer")
        if value < 1:
            raise SettingsError(
                f"{origin} must be at least 1",
                suggestion="keep at least one backup per configuration file",
            )
        return value

    if not isinstance(raw, str):
        raise SettingsError(f"{origin} must be a string")
    if key == "log_level":
        level = raw.strip().upper()
        if level not in _LOG_LEVELS:
            raise SettingsError(
                f"{origin} must be one of {', '.join(sorted(_LOG_LEVELS))}",
            )
        return level

    fmt = raw.strip().lower()
    if fmt not in _LOG_FORMATS:
        raise SettingsError(f"{origin} must be 'json' or 'console'")
    return fmt


def _normalize_path(
    raw: str,
    base_dir: Path | None,
    environ: Mapping[str, str] | None,
) -> Path:
    candidate = expand_home(raw, environ=environ)
    if not candidate.is_absolute() and base_dir is not None:
        candidate = base_dir / candidate
    return Path(os.path.normpath(str(candidate)))
