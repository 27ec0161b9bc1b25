"""Observability package exports."""

from strata_config.observability.logging import (
    LoggingConfig,
    redact_event,
    redact_value,
    reset_logging,
    setup_logging,
)

__all__ = [
    "LoggingConfig",
    "redact_event",
    "redact_value",
    "reset_logging",
    "setup_logging",
]
