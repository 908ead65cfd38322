"""Utility exports for filesystem and hashing helpers."""

from specular_drift.utils.fs import atomic_write, iter_project_files
from specular_drift.utils.hashing import sha256_bytes, sha256_file, sha256_text

__all__ = [
    "atomic_write",
    "iter_project_files",
    "sha256_bytes",
    "sha256_file",
    "sha256_text",
]
