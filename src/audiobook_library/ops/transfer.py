"""Copy staged audiobooks into the managed library."""

from __future__ import annotations

import shutil
from pathlib import Path

from loguru import logger

log = logger.bind(stage="transfer")


def copy_recursive(src: Path, dst: Path) -> None:
    """Copy a file or a whole directory tree from src to dst.

    Directories are recreated and filled entry by entry; files are copied
    byte for byte and then given the source file's mode. Raises OSError on
    the first failure, leaving anything already copied in place.
    """
    if src.is_dir():
        _copy_directory(src, dst)
    else:
        _copy_file(src, dst)


def _copy_directory(src: Path, dst: Path) -> None:
    dst.mkdir(parents=True, exist_ok=True)
    log.debug(f"mkdir {dst}")
    for entry in sorted(src.iterdir()):
        target = dst / entry.name
        if entry.is_dir():
            _copy_directory(entry, target)
        else:
            _copy_file(entry, target)


def _copy_file(src: Path, dst: Path) -> None:
    dst.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(src, dst)
    shutil.copymode(src, dst)
    log.debug(f"Copied {src} -> {dst}")
