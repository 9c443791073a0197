"""Root confinement and directory browsing for library and import roots.

Every client-supplied relative path goes through resolve_within_root()
before it touches the filesystem. The library browse root and the import
browse root (and each import folder) share the same check.
"""

from __future__ import annotations

import os
from pathlib import Path

from loguru import logger

from .errors import ConfigError, DirectoryUnreadableError, PathEscapesRootError
from .models import AUDIO_EXTENSIONS, BrowseEntry, DirectoryEntry, DirectoryListing

log = logger.bind(stage="paths")


def resolve_within_root(root: str | Path, child: str | Path | None) -> tuple[Path, str]:
    """Join child onto root and return (absolute_path, relative_path).

    The child is always treated as relative to root (leading separators are
    ignored). An empty or "." child resolves to the root itself with an
    empty relative path.

    Raises PathEscapesRootError if the cleaned result is not inside root.
    """
    root_abs = os.path.abspath(str(root))
    raw = str(child or "").replace("\\", "/").lstrip("/")
    sub = os.path.normpath(raw) if raw else "."
    if sub == ".":
        return Path(root_abs), ""

    target = os.path.normpath(os.path.join(root_abs, sub))
    rel = os.path.relpath(target, root_abs)
    if rel == ".." or rel.startswith(".." + os.sep):
        log.warning(f"Rejected path outside root: child={child!r} root={root_abs}")
        raise PathEscapesRootError(root_abs, str(child))

    return Path(target), rel.replace(os.sep, "/")


def browse_root(root: str | Path | None, child: str | None = None) -> DirectoryListing:
    """List the subdirectories of root/child, confined to root."""
    if not root:
        raise ConfigError("browse root not configured")

    target, rel = resolve_within_root(root, child)
    try:
        with os.scandir(target) as it:
            dirs = sorted(
                (e.name for e in it if e.is_dir()),
                key=str.lower,
            )
    except OSError as e:
        raise DirectoryUnreadableError(str(target), e.strerror or str(e)) from e

    entries = [
        DirectoryEntry(
            name=name,
            path=f"{rel}/{name}" if rel else name,
            full_path=(target / name).as_posix(),
        )
        for name in dirs
    ]
    log.debug(f"browse_root: {target} -> {len(entries)} directories")
    return DirectoryListing(path=rel, full_path=target.as_posix(), entries=entries)


def browse_folder(folder_root: str | Path, sub_path: str | None = None) -> list[BrowseEntry]:
    """List files and folders under an import folder, flagging audiobook candidates.

    Directories are always candidates; files are candidates when they have a
    recognized audio extension.
    """
    target, rel = resolve_within_root(folder_root, sub_path)
    try:
        with os.scandir(target) as it:
            raw_entries = sorted(it, key=lambda e: e.name.lower())
    except OSError as e:
        raise DirectoryUnreadableError(str(target), e.strerror or str(e)) from e

    result: list[BrowseEntry] = []
    for entry in raw_entries:
        is_dir = entry.is_dir()
        size = None
        if not is_dir:
            try:
                size = entry.stat().st_size
            except OSError:
                size = None
        result.append(
            BrowseEntry(
                name=entry.name,
                path=f"{rel}/{entry.name}" if rel else entry.name,
                is_dir=is_dir,
                size=size,
                is_audiobook=is_dir
                or Path(entry.name).suffix.lower() in AUDIO_EXTENSIONS,
            )
        )
    return result
