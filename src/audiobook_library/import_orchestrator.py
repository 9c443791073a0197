"""Import staged files into the managed library.

For each selected entry of an import folder:

    confine to folder root -> plan destination -> copy -> find media files
    -> locate the containing library directory -> register the audiobook

Per-item failures are collected into the job's errors and the remaining
selections keep going. Only an unknown or disabled import folder fails the
whole request, and it does so before anything is copied.

No rollback: an item that fails after its copy leaves the copied files in
place without a database record.
"""

from __future__ import annotations

import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

from loguru import logger

from .config import LibraryConfig
from .errors import (
    ImportFolderDisabledError,
    LibraryError,
    LibraryPathNotFoundError,
    NoAudioFilesFoundError,
    NoLibraryAssignedError,
)
from .library_db import LibraryDB
from .models import Audiobook, BrowseEntry, ImportFolder, ImportJob, ImportStatus, LibraryPath
from .ops.planner import build_destination, extract_metadata
from .ops.transfer import copy_recursive
from .paths import browse_folder, resolve_within_root
from .scanner import media_files_for_asset

log = logger.bind(stage="import")


def find_library_path_for_asset(paths: list[LibraryPath], asset_path: Path) -> LibraryPath:
    """Pick the configured directory containing asset_path (longest match wins).

    Raises LibraryPathNotFoundError when no directory contains it.
    """
    asset = os.path.abspath(asset_path)
    best: LibraryPath | None = None
    best_len = -1
    for lp in paths:
        root = os.path.abspath(lp.path)
        if asset != root and not asset.startswith(root.rstrip(os.sep) + os.sep):
            continue
        if len(root) > best_len:
            best, best_len = lp, len(root)
    if best is None:
        raise LibraryPathNotFoundError(str(asset_path))
    return best


def job_status(imported: int, errors: int) -> ImportStatus:
    if errors == 0:
        return ImportStatus.COMPLETED
    if imported > 0:
        return ImportStatus.PARTIAL
    return ImportStatus.FAILED


class Importer:
    """Copies staged selections into the library and registers them.

    Attributes:
        db: LibraryDB holding import folders, settings and library paths
        config: Library configuration (duration probing)
    """

    def __init__(self, db: LibraryDB, config: LibraryConfig | None = None) -> None:
        self.db = db
        self.config = config or LibraryConfig()

    def list_import_folders(self) -> list[ImportFolder]:
        return self.db.get_import_folders()

    def enabled_import_folders(self) -> list[ImportFolder]:
        return self.db.get_enabled_import_folders()

    def _enabled_folder(self, folder_id: str) -> ImportFolder:
        folder = self.db.get_import_folder_by_id(folder_id)
        if not folder.enabled:
            raise ImportFolderDisabledError(folder.name)
        return folder

    def browse_folder(self, folder_id: str, sub_path: str | None = None) -> list[BrowseEntry]:
        """List an import folder's entries, confined to the folder root."""
        folder = self._enabled_folder(folder_id)
        return browse_folder(folder.path, sub_path)

    def import_selection(
        self,
        folder_id: str,
        selections: list[str],
        template: str | None = None,
    ) -> ImportJob:
        """Import the selected entries (paths relative to the import folder).

        Raises NotFoundError / ImportFolderDisabledError before any work
        when the folder can't be used. Everything after that is reported
        through the returned job.
        """
        folder = self._enabled_folder(folder_id)
        settings = self.db.get_import_settings()
        template = template or settings.template

        job = ImportJob(
            id=str(uuid.uuid4()),
            status=ImportStatus.PROCESSING,
            source_paths=list(selections),
            started_at=datetime.now(timezone.utc),
        )
        log.info(
            f"Import job {job.id}: {len(selections)} selections from "
            f"'{folder.name}' template='{template}'"
        )

        for selection in selections:
            try:
                source, _ = resolve_within_root(folder.path, selection)
                audiobook = self._process_import(
                    source, template, Path(settings.destination_path)
                )
            except (OSError, LibraryError) as e:
                log.warning(f"Import of {selection} failed: {e}")
                job.errors.append(f"failed to import {selection}: {e}")
                continue
            job.imported_books.append(audiobook)

        job.completed_at = datetime.now(timezone.utc)
        job.status = job_status(len(job.imported_books), len(job.errors))
        log.info(
            f"Import job {job.id} {job.status}: "
            f"{len(job.imported_books)} imported, {len(job.errors)} errors"
        )
        return job

    def _process_import(self, source: Path, template: str, destination_root: Path) -> Audiobook:
        if not source.exists():
            raise FileNotFoundError(f"source not found: {source}")

        metadata = extract_metadata(source)
        dest = build_destination(metadata, template, destination_root)
        dest.parent.mkdir(parents=True, exist_ok=True)
        copy_recursive(source, dest)
        log.debug(f"Copied {source} -> {dest}")
        return self._create_audiobook_entry(dest)

    def _create_audiobook_entry(self, asset_path: Path) -> Audiobook:
        media_files = media_files_for_asset(asset_path, probe=self.config.probe_durations)
        if not media_files:
            raise NoAudioFilesFoundError(str(asset_path))

        directory = find_library_path_for_asset(self.db.get_library_paths(), asset_path)
        path_config = self.db.get_library_path_by_id(directory.id)
        if len(path_config.libraries) != 1:
            raise NoLibraryAssignedError(path_config.name, len(path_config.libraries))

        audiobook = Audiobook(
            id=str(uuid.uuid4()),
            library_id=path_config.libraries[0].id,
            library_path_id=path_config.id,
            asset_path=str(asset_path),
        )
        self.db.create_audiobook(audiobook, media_files)
        return self.db.get_audiobook(audiobook.id)
