"""
strata-config — unit tests for observability logging

File: tests/unit/observability/test_logging.py
Last updated: 2026-10-18

Purpose
- Validate structlog configuration, level filtering and secret redaction.

What this test file should cover
- JSON line validity with timestamp and level fields.
- Redaction of sensitive keys and inline assignments.
- Console rendering and mapping-based configuration.

Non-functional requirements
- Deterministic and offline.
"""

from __future__ import annotations

import io
import json
from typing import TYPE_CHECKING

import pytest
import structlog

from strata_config.observability.logging import (
    LoggingConfig,
    redact_value,
    reset_logging,
    setup_logging,
)
from strata_config.settings import ManagerSettings

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    reset_logging()


def _lines(stream: io.StringIO) -> list[dict[str, object]]:
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_json_output_with_redaction() -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="INFO", stream=stream))

    structlog.get_logger("strata_config.tests").info(
        "config_write_committed",
        path="/x/config.json",
        env={"GITHUB_TOKEN": "ghp_secret"},
        note="api_key=abc123 kept",
        auth_token="t0k3n",
    )

    [line] = _lines(stream)
    assert line["event"] == "config_write_committed"
    assert line["level"] == "info"
    assert "T" in str(line["timestamp"])
    assert line["path"] == "/x/config.json"
    assert line["env"] == "***REDACTED***"
    assert line["auth_token"] == "***REDACTED***"
    assert line["note"] == "api_key=***REDACTED*** kept"


def test_level_filtering() -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="WARNING", stream=stream))
    logger = structlog.get_logger("strata_config.tests")

    logger.info("config_written")
    logger.warning("config_write_rejected", rule="server-map")

    assert [line["event"] for line in _lines(stream)] == ["config_write_rejected"]


def test_console_format() -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="DEBUG", log_format="console", stream=stream))

    structlog.get_logger("strata_config.tests").debug("backup_created", size=3)

    output = stream.getvalue()
    assert "backup_created" in output
    assert not output.lstrip().startswith("{")


def test_mapping_config_from_settings(tmp_path: Path) -> None:
    stream = io.StringIO()
    settings = ManagerSettings(
        global_config_path=tmp_path / "config.json",
        backup_dir=tmp_path / "backups",
        log_level="DEBUG",
    )
    setup_logging({**settings.to_dict(), "stream": stream})

    structlog.get_logger("strata_config.tests").debug("backup_pruned")

    assert [line["event"] for line in _lines(stream)] == ["backup_pruned"]


def test_redaction_can_be_disabled() -> None:
    stream = io.StringIO()
    setup_logging(LoggingConfig(level="INFO", stream=stream, redact=False))

    structlog.get_logger("strata_config.tests").info("config_exported", password="visible")

    assert _lines(stream)[0]["password"] == "visible"


def test_invalid_level_is_rejected() -> None:
    with pytest.raises(ValueError, match="unsupported logging level"):
        setup_logging(LoggingConfig(level="LOUD"))


def test_redact_value_walks_nested_structures() -> None:
    value = {
        "servers": [{"name": "npx", "password": "x"}],
        "header": "Bearer abc.def",
        "count": 3,
    }

    assert redact_value(value) == {
        "servers": [{"name": "npx", "password": "***REDACTED***"}],
        "header": "Bearer ***REDACTED***",
        "count": 3,
    }
