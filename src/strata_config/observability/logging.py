"""Structured logging setup with JSON-lines output and redaction support."""

from __future__ import annotations

import logging
import re
import sys
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, Final, Literal, TextIO

import structlog

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_REDACTED_VALUE: Final[str] = "***REDACTED***"

# Exact key names whose whole value is sensitive. ``env`` holds server secrets.
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({"env", "environment"})

_SENSITIVE_KEY_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "passphrase",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "cookie",
    "private_key",
)

_SENSITIVE_ASSIGNMENT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b(api[_-]?key|token|password|secret|client_secret|authorization)\b\s*([:=])\s*([^\s,;]+)"
)
_BEARER_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Configuration for structlog output."""

    level: int | str = "WARNING"
    log_format: Literal["json", "console"] = "json"
    stream: TextIO | None = None
    redact: bool = True


def setup_logging(config: LoggingConfig | Mapping[str, object] | None = None) -> None:
    """
    Configure structlog for the process.

    ``config`` may be a ``LoggingConfig`` or a mapping with ``log_level``,
    ``log_format`` and ``redact_secrets`` keys (as produced from settings).
    """

    resolved = _coerce_config(config)
    level = _parse_log_level(resolved.level)
    if resolved.log_format not in ("json", "console"):
        raise ValueError(f"unsupported log format {resolved.log_format!r}")

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if resolved.redact:
        processors.append(redact_event)
    processors.append(structlog.processors.format_exc_info)
    if resolved.log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True, default=str))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(
            file=resolved.stream if resolved.stream is not None else sys.stderr
        ),
        cache_logger_on_first_use=False,
    )


def reset_logging() -> None:
    """Restore structlog defaults and drop bound context variables."""

    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


def redact_event(
    _logger: object,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """structlog processor applying ``redact_value`` to every field."""

    for key in list(event_dict):
        event_dict[key] = _redact_value(event_dict[key], key_context=key)
    return event_dict


def redact_value(value: Any) -> Any:
    """Deep redaction for secrets in nested values and inline assignments."""

    return _redact_value(value, key_context=None)


def _coerce_config(config: LoggingConfig | Mapping[str, object] | None) -> LoggingConfig:
    if config is None:
        return LoggingConfig()
    if isinstance(config, LoggingConfig):
        return config

    raw_level = config.get("log_level", "WARNING")
    level: int | str = raw_level if isinstance(raw_level, (int, str)) else "WARNING"
    raw_format = config.get("log_format", "json")
    log_format = raw_format if raw_format in ("json", "console") else "json"
    stream = config.get("stream")
    return LoggingConfig(
        level=level,
        log_format=log_format,  # type: ignore[arg-type]
        stream=stream if hasattr(stream, "write") else None,  # type: ignore[arg-type]
        redact=bool(config.get("redact_secrets", True)),
    )


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, int):
        return value

    if not isinstance(value, str):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")

    normalized = value.strip().upper()
    parsed = logging.getLevelName(normalized)
    if isinstance(parsed, int):
        return parsed

    raise ValueError(f"unsupported logging level {value!r}")


def _redact_value(value: Any, *, key_context: str | None) -> Any:
    if key_context is not None and _requires_redaction_for_key(key_context):
        return _REDACTED_VALUE

    if isinstance(value, str):
        return _redact_string(value)

    if isinstance(value, (list, tuple)):
        return [_redact_value(item, key_context=None) for item in value]

    if isinstance(value, Mapping):
        return {str(key): _redact_value(item, key_context=str(key)) for key, item in value.items()}

    return value


def _requires_redaction_for_key(key: str) -> bool:
    key_lower = key.lower()
    return key_lower in _SENSITIVE_KEYS or any(term in key_lower for term in _SENSITIVE_KEY_TERMS)


def _redact_string(text: str) -> str:
    redacted = _SENSITIVE_ASSIGNMENT_PATTERN.sub(
        lambda match: f"{match.group(1)}{match.group(2)}{_REDACTED_VALUE}", text
    )
    return _BEARER_TOKEN_PATTERN.sub(f"Bearer {_REDACTED_VALUE}", redacted)


__all__ = [
    "JSONScalar",
    "JSONValue",
    "LoggingConfig",
    "redact_event",
    "redact_value",
    "reset_logging",
    "setup_logging",
]
