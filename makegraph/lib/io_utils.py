"""Filesystem utilities for the build engine."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Union

PathLike = Union[str, Path]

# Maps a path to its modification time in nanoseconds, or None when absent.
TimestampProvider = Callable[[str], Optional[int]]


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def file_mtime(path: PathLike) -> Optional[int]:
    """Return the last-modified time of ``path`` in ns, or None if it does not exist.

    Any other OS error (permissions, a file used as a directory) propagates.
    """
    try:
        return Path(path).stat().st_mtime_ns
    except FileNotFoundError:
        return None


def make_provider(base: Path) -> TimestampProvider:
    """Timestamp provider that resolves relative targets against ``base``."""

    def provider(target: str) -> Optional[int]:
        return file_mtime(base / target)

    return provider


def remove_file(path: Path) -> bool:
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    return True
