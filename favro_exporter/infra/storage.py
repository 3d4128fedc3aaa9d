"""Destination directory preparation for an export run."""

from __future__ import annotations

import shutil
from pathlib import Path


class DestinationError(OSError):
    """Raised when the destination directory cannot be created or emptied."""


def clean_directory(path: Path) -> int:
    """Remove everything inside ``path`` but keep the directory. Return entries removed."""

    removed = 0
    for entry in path.iterdir():
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1
    return removed


def prepare_destination(path: Path, clean: bool = True) -> Path:
    """Create the destination directory and optionally empty it."""

    path = path.expanduser()
    if path.exists() and not path.is_dir():
        raise DestinationError(f"Destination is not a directory: {path}")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise DestinationError(f"Could not create the destination directory {path}: {exc}") from exc
    if clean:
        try:
            clean_directory(path)
        except OSError as exc:
            raise DestinationError(f"Could not clean the destination directory {path}: {exc}") from exc
    return path.resolve()


__all__ = ["DestinationError", "clean_directory", "prepare_destination"]
