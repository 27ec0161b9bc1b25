"""Utility exports for filesystem and hashing helpers."""

from strata_config.utils.fs import delete_within, is_within, read_bytes, write_atomic
from strata_config.utils.hashing import path_key, sha256_bytes, sha256_text

__all__ = [
    "delete_within",
    "is_within",
    "path_key",
    "read_bytes",
    "sha256_bytes",
    "sha256_text",
    "write_atomic",
]
