"""
strata-config — unit tests for the settings loader

File: tests/unit/test_settings.py
Last updated: 2026-10-18

Purpose
- Validate settings precedence (env > file > defaults) and value coercion.

What this test file should cover
- Platform defaults when no file and no variables exist.
- ``[strata]`` table loading with relative path normalization.
- ``STRATA_*`` overrides and rejection of invalid values.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from strata_config.paths import default_backup_dir, global_config_path
from strata_config.settings import ManagerSettings, SettingsError, load_settings


def _write_settings(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text.strip() + "\n", encoding="utf-8")
    return path


def test_defaults_without_file_or_env(tmp_path: Path) -> None:
    env = {"HOME": str(tmp_path)}

    loaded = load_settings(environ=env)

    assert loaded == ManagerSettings(
        global_config_path=global_config_path(environ=env),
        backup_dir=default_backup_dir(environ=env),
    )
    assert loaded.backup_retention == 10
    assert loaded.log_level == "WARNING"
    assert loaded.log_format == "json"
    assert loaded.source_path is None


def test_file_values_and_relative_paths(tmp_path: Path) -> None:
    settings_path = _write_settings(
        tmp_path / "conf" / "strata.toml",
        """
[strata]
global_config_path = "global/config.json"
backup_dir = "~/bk"
backup_retention = 3
log_level = "info"
log_format = "console"
""",
    )

    loaded = load_settings(settings_path, environ={"HOME": str(tmp_path / "home")})

    assert loaded.global_config_path == tmp_path / "conf" / "global" / "config.json"
    assert loaded.backup_dir == tmp_path / "home" / "bk"
    assert loaded.backup_retention == 3
    assert loaded.log_level == "INFO"
    assert loaded.log_format == "console"
    assert loaded.source_path == settings_path


def test_environment_overrides_file(tmp_path: Path) -> None:
    settings_path = _write_settings(
        tmp_path / "strata.toml",
        """
[strata]
backup_retention = 3
log_level = "ERROR"
""",
    )
    env = {
        "HOME": str(tmp_path),
        "STRATA_BACKUP_RETENTION": "7",
        "STRATA_LOG_LEVEL": "debug",
        "STRATA_BACKUP_DIR": str(tmp_path / "backups"),
        "STRATA_GLOBAL_CONFIG": str(tmp_path / "g.json"),
        "STRATA_LOG_FORMAT": "CONSOLE",
    }

    loaded = load_settings(settings_path, environ=env)

    assert loaded.backup_retention == 7
    assert loaded.log_level == "DEBUG"
    assert loaded.backup_dir == tmp_path / "backups"
    assert loaded.global_config_path == tmp_path / "g.json"
    assert loaded.log_format == "console"


def test_default_settings_file_is_read_when_present(tmp_path: Path) -> None:
    env = {"HOME": str(tmp_path)}
    default_file = global_config_path(environ=env).parent / "strata.toml"
    _write_settings(default_file, "[strata]\nbackup_retention = 4")

    loaded = load_settings(environ=env)

    assert loaded.backup_retention == 4
    assert loaded.source_path == default_file


def test_blank_environment_values_are_ignored(tmp_path: Path) -> None:
    loaded = load_settings(environ={"HOME": str(tmp_path), "STRATA_BACKUP_RETENTION": "  "})

    assert loaded.backup_retention == 10


@pytest.mark.parametrize(
    "body",
    [
        "[strata]\nbackup_retention = 0",
        "[strata]\nbackup_retention = true",
        '[strata]\nbackup_retention = "many"',
        '[strata]\nlog_level = "LOUD"',
        '[strata]\nlog_format = "xml"',
        '[strata]\nbackup_dir = ""',
        "[strata]\nunknown_key = 1",
        "strata = 5",
        "[strata\n",
    ],
)
def test_invalid_file_values_raise(tmp_path: Path, body: str) -> None:
    settings_path = _write_settings(tmp_path / "strata.toml", body)

    with pytest.raises(SettingsError) as exc_info:
        load_settings(settings_path, environ={"HOME": str(tmp_path)})

    assert exc_info.value.suggestion


def test_invalid_environment_value_raises(tmp_path: Path) -> None:
    with pytest.raises(SettingsError, match="STRATA_BACKUP_RETENTION"):
        load_settings(environ={"HOME": str(tmp_path), "STRATA_BACKUP_RETENTION": "-2"})


def test_explicit_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(SettingsError, match="not found"):
        load_settings(tmp_path / "absent.toml", environ={"HOME": str(tmp_path)})
