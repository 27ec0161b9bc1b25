"""
strata-config — layered configuration manager

File: src/strata_config/__init__.py
Last updated: 2026-10-18

Purpose
- Package root. Manages a global and a per-project configuration document
  for an AI coding assistant, with validated writes, pre-write backups and
  a merged effective view with per-key source attribution.

Functional requirements
- Must not have side effects at import time (no settings loading, no logging init).

Key interfaces
- ``strata_config.config.manager.ConfigManager`` is the entry point a command
  surface drives.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
