"""
specular-drift — filesystem utilities

Purpose
- Atomic report writes and a fault-tolerant project walk.

Functional requirements
- Atomic writes use temp files in the destination directory and replace in a single step.
- The project walk yields files in a deterministic order and skips unreadable directories.
"""

from __future__ import annotations

import contextlib
import os
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

PathLike = str | os.PathLike[str]

__all__ = [
    "atomic_write",
    "iter_project_files",
]


def atomic_write(path: PathLike, data: bytes | str, *, encoding: str = "utf-8") -> None:
    """
    Atomically write ``data`` to ``path``.

    The write strategy is:
    1. create temp file in the same directory,
    2. write + flush + fsync file data,
    3. replace target via ``os.replace``.

    The parent directory must already exist.
    """

    target = Path(path)
    target_parent = target.parent.resolve(strict=True)
    if not target_parent.is_dir():
        raise NotADirectoryError(f"{target_parent!s} is not a directory")

    fd, temp_name = tempfile.mkstemp(
        prefix=f".{target.name}.",
        suffix=".tmp",
        dir=str(target_parent),
    )
    temp_path = Path(temp_name)
    payload = data.encode(encoding) if isinstance(data, str) else data

    try:
        with os.fdopen(fd, "wb") as file_handle:
            file_handle.write(payload)
            file_handle.flush()
            os.fsync(file_handle.fileno())
        os.replace(temp_path, target)
    except BaseException:
        with contextlib.suppress(OSError):
            temp_path.unlink(missing_ok=True)
        raise


def iter_project_files(root: PathLike) -> Iterator[Path]:
    """Yield every non-directory entry below ``root``, sorted per directory.

    Directories that cannot be listed are skipped silently; symlinked
    directories are not followed.
    """

    for dirpath, dirnames, filenames in os.walk(root, onerror=_ignore_walk_error):
        dirnames.sort()
        base = Path(dirpath)
        for name in sorted(filenames):
            yield base / name


def _ignore_walk_error(_error: OSError) -> None:
    return None
