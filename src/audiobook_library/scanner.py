"""Audiobook discovery -- find candidate books under a library directory.

A library directory is walked in two passes over its immediate children:

1. Loose files: every audio file directly under the root is its own
   one-file audiobook, keyed by the file path.
2. Directories: a child directory that directly holds audio files is one
   audiobook (its direct audio children are the media files; anything
   nested deeper is ignored). Otherwise the branch is walked depth-first
   and the first directory that directly holds audio files becomes a book;
   its subtree is pruned, sibling branches keep being walked.

Unreadable directories below the root are logged and skipped.
"""

from __future__ import annotations

import os
import uuid
from pathlib import Path

from loguru import logger

from .errors import DirectoryUnreadableError
from .ffprobe import probe_duration
from .models import (
    AUDIO_EXTENSIONS,
    DEFAULT_MIME_TYPE,
    MIME_TYPES,
    BrowseEntry,
    Discovery,
    MediaFile,
)

log = logger.bind(stage="scan")


def is_audio_file(path: str | Path) -> bool:
    """Check the extension against the recognized audio extensions."""
    return Path(path).suffix.lower() in AUDIO_EXTENSIONS


def mime_type_for(path: str | Path) -> str:
    """Map an audio extension to its MIME type (audio/mpeg fallback)."""
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


def _new_media_file(path: Path, filename: str, probe: bool) -> MediaFile:
    return MediaFile(
        id=str(uuid.uuid4()),
        filename=filename,
        mime_type=mime_type_for(path),
        duration_sec=probe_duration(path) if probe else 0.0,
    )


def _audio_names(filenames: list[str]) -> list[str]:
    return sorted(f for f in filenames if is_audio_file(f))


def find_media_files(directory: Path, probe: bool = False) -> list[MediaFile]:
    """Return the audio files directly inside directory (non-recursive).

    Raises OSError if the directory can't be listed.
    """
    with os.scandir(directory) as it:
        names = [e.name for e in it if e.is_file()]
    return [_new_media_file(directory / n, n, probe) for n in _audio_names(names)]


def media_files_for_asset(asset_path: Path, probe: bool = False) -> list[MediaFile]:
    """Media files for an asset: the file itself, or a directory's direct audio children."""
    if asset_path.is_file():
        if not is_audio_file(asset_path):
            return []
        return [_new_media_file(asset_path, asset_path.name, probe)]
    return find_media_files(asset_path, probe)


def discover_audiobooks(directory: str | Path, probe: bool = False) -> list[Discovery]:
    """Walk a library directory and return its candidate audiobooks.

    Raises DirectoryUnreadableError if the root itself can't be listed.
    """
    root = Path(directory)
    log.debug(f"discover_audiobooks: {root}")
    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise DirectoryUnreadableError(str(root), e.strerror or str(e)) from e

    discoveries: list[Discovery] = []

    # Pass 1: loose audio files in the root
    for entry in entries:
        if entry.is_dir() or not entry.is_file():
            continue
        if is_audio_file(entry.name):
            path = root / entry.name
            discoveries.append(
                Discovery(
                    asset_path=str(path),
                    media_files=[_new_media_file(path, entry.name, probe)],
                )
            )

    # Pass 2: directories as books
    for entry in entries:
        if not entry.is_dir():
            continue
        branch = root / entry.name
        try:
            media = find_media_files(branch, probe)
        except OSError as e:
            log.warning(f"Skipping unreadable directory {branch}: {e}")
            continue
        if media:
            discoveries.append(Discovery(asset_path=str(branch), media_files=media))
            continue
        discoveries.extend(_discover_nested(branch, probe))

    log.info(f"Discovered {len(discoveries)} audiobooks in {root}")
    for d in discoveries:
        log.debug(f"  {d.asset_path} ({len(d.media_files)} files)")
    return discoveries


def _discover_nested(branch: Path, probe: bool) -> list[Discovery]:
    """Depth-first walk of a branch with no direct audio.

    The first directory on each path that holds audio files is a book;
    clearing dirnames stops os.walk from descending into it.
    """
    found: list[Discovery] = []

    def _on_error(err: OSError) -> None:
        log.warning(f"Skipping unreadable directory {err.filename}: {err.strerror}")

    for dirpath, dirnames, filenames in os.walk(branch, onerror=_on_error):
        dirnames.sort()
        current = Path(dirpath)
        if current == branch:
            continue
        audio = _audio_names(filenames)
        if not audio:
            continue
        found.append(
            Discovery(
                asset_path=str(current),
                media_files=[_new_media_file(current / n, n, probe) for n in audio],
            )
        )
        dirnames.clear()
    return found


def list_entries(root: str | Path) -> list[BrowseEntry]:
    """Top-level entries of a library directory.

    Directories carry a recursive file count, files carry their size
    (None when it cannot be read, e.g. a dangling symlink). A missing root
    yields an empty list.
    """
    root = Path(root)
    try:
        with os.scandir(root) as it:
            raw = sorted(it, key=lambda e: e.name)
    except FileNotFoundError:
        return []
    except OSError as e:
        raise DirectoryUnreadableError(str(root), e.strerror or str(e)) from e

    entries: list[BrowseEntry] = []
    for e in raw:
        if e.is_dir():
            entries.append(
                BrowseEntry(
                    name=e.name,
                    path=e.name,
                    is_dir=True,
                    file_count=_count_files(root / e.name),
                    is_audiobook=True,
                )
            )
        else:
            try:
                size = e.stat().st_size
            except OSError:
                log.warning(f"Cannot stat {root / e.name}")
                size = None
            entries.append(
                BrowseEntry(
                    name=e.name,
                    path=e.name,
                    is_dir=False,
                    size=size,
                    is_audiobook=is_audio_file(e.name),
                )
            )
    return entries


def _count_files(directory: Path) -> int:
    # Unreadable subdirectories are silently left out of the count
    return sum(len(filenames) for _, _, filenames in os.walk(directory))
